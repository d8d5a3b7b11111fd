# ==============================================================================
# UNIDAD DE TRABAJO - Todo o nada sobre varios repositorios JSON
# ==============================================================================
# Crear un pedido toca pedidos.json y productos.json; cancelarlo también.
# JsonUnitOfWork toma el lock compartido de los repositorios, guarda un
# snapshot de cada archivo involucrado y, si el bloque lanza una excepción,
# restaura los snapshots antes de propagarla.
#
# Mientras el bloque está abierto ningún otro hilo del proceso puede leer
# ni escribir los archivos: la verificación de stock y el descuento quedan
# serializados.
#
# Uso:
#     with JsonUnitOfWork(order_repo, product_repo):
#         order_repo.create_with_lines(...)
#         product_repo.adjust_stock(pid, -qty)
# ==============================================================================

import logging
from typing import Any, List, Tuple

from sportsline.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class JsonUnitOfWork:
    """Context manager transaccional para repositorios basados en JSON."""

    def __init__(self, *repositories: BaseRepository):
        self.repositories = repositories
        self._snapshots: List[Tuple[BaseRepository, Any]] = []

    def __enter__(self) -> 'JsonUnitOfWork':
        BaseRepository._file_lock.acquire()
        try:
            self._snapshots = [(repo, repo.snapshot()) for repo in self.repositories]
        except Exception:
            BaseRepository._file_lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                logger.warning(
                    'Revirtiendo unidad de trabajo (%s: %s)',
                    exc_type.__name__, exc
                )
                for repo, data in reversed(self._snapshots):
                    repo.restore(data)
        finally:
            self._snapshots = []
            BaseRepository._file_lock.release()
        # Nunca suprimir la excepción original
        return False
