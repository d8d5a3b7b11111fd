# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con un lock reentrante
    compartido por TODOS los repositorios.

    El lock compartido es lo que permite a JsonUnitOfWork agrupar
    escrituras de varios archivos en una sola unidad.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    # Nombre del archivo dentro de data_dir (definido por cada subclase)
    file_name: str = ''

    def __init__(self, data_dir: str):
        """
        Inicializa el repositorio.

        Args:
            data_dir: Carpeta donde viven los archivos JSON
        """
        os.makedirs(data_dir, exist_ok=True)
        self.file_path = os.path.join(data_dir, self.file_name)
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        with self._file_lock:
            if not os.path.exists(self.file_path):
                self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.

        Returns:
            Estructura vacía (dict, list, etc.) según el repositorio
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Raises:
            json.JSONDecodeError: Si el archivo tiene JSON inválido
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON de forma atómica
        (archivo temporal + os.replace).
        """
        with self._file_lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    # =========================================================================
    # SOPORTE PARA UNIDAD DE TRABAJO
    # =========================================================================

    def snapshot(self) -> Any:
        """Copia del contenido actual, para restaurarlo si algo falla."""
        return self._read_raw()

    def restore(self, data: Any) -> None:
        """Reemplaza el contenido por un snapshot previo."""
        self._write_raw(data)


class DictRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como diccionario.
    El ID es la clave del diccionario (siempre string en JSON).

    Ejemplo: productos.json -> {"1": {...}, "2": {...}}
    """

    def _empty_data(self) -> Dict:
        return {}

    def get_all(self) -> Dict[str, Any]:
        """Obtiene todos los registros."""
        data = self._read_raw()
        return data if isinstance(data, dict) else {}

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Obtiene un registro por su ID.

        Args:
            record_id: ID del registro (int o str)

        Returns:
            Datos del registro o None si no existe
        """
        return self.get_all().get(str(record_id))

    def update(self, record_id: Any, record_data: Dict[str, Any]) -> None:
        """Crea o reemplaza un registro."""
        with self._file_lock:
            data = self.get_all()
            data[str(record_id)] = record_data
            self._write_raw(data)

    def next_id(self) -> int:
        """Siguiente ID numérico secuencial."""
        max_id = 0
        for key in self.get_all().keys():
            try:
                max_id = max(max_id, int(key))
            except ValueError:
                continue
        return max_id + 1


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: audit.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """Obtiene todos los registros."""
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)
