# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...]
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List

from .base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio para gestión del log de auditoría.

    Formato de datos en audit.json:
    [
        {
            "type": "PEDIDO",
            "user": "3",
            "message": "Pedido 12 creado",
            "timestamp": "2024-01-01 10:00:00",
            "related_id": "12",
            "details": {...}
        }
    ]
    """

    file_name = 'audit.json'

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        return sorted(
            self.get_all(),
            key=lambda x: x.get('timestamp', ''),
            reverse=True
        )

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los logs.
        Aplica límite de registros para evitar archivos muy grandes.
        """
        if len(logs) > self.MAX_LOGS:
            logs = logs[:self.MAX_LOGS]
        self.save_all(logs)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (PEDIDO, STOCK, CIFRADO, USUARIO, SISTEMA)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (pedido, producto, etc.)
            details: Detalles adicionales
        """
        log_entry = {
            'type': log_type,
            'user': user or 'sistema',
            'message': message,
            'timestamp': datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            'related_id': related_id,
            'details': details or {}
        }

        with self._file_lock:
            logs = self.get_all()  # Sin ordenar para append eficiente
            logs.insert(0, log_entry)  # Insertar al inicio (más reciente primero)
            self.save(logs)

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        return [log for log in self.load() if log.get('type') == log_type]

    def get_logs_by_related_id(self, related_id: str) -> List[Dict[str, Any]]:
        """Historial de un pedido/producto concreto."""
        return [log for log in self.load() if log.get('related_id') == str(related_id)]
