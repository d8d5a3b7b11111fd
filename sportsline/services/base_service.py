# ==============================================================================
# SERVICIO BASE - Funcionalidad común de los servicios
# ==============================================================================
# Tiempo máximo por operación y ejecución en paralelo de lecturas
# independientes. Ambos usan un pool de hilos compartido.
# ==============================================================================

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Optional

from sportsline.errors import Unavailable

# Pool compartido por todos los servicios
_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix='sportsline')

DEFAULT_TIMEOUT = 10.0


class BaseService:
    """
    Clase base de los servicios.

    Attributes:
        timeout: Segundos máximos que puede tardar una operación acotada
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
        self.logger = logging.getLogger(type(self).__module__)

    def _run_with_timeout(self, operation: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Ejecuta fn en el pool y espera como máximo self.timeout segundos.

        Las excepciones de fn se propagan sin cambios.

        Raises:
            Unavailable: Si se supera el tiempo máximo
        """
        future = _executor.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            self.logger.error('%s superó el tiempo máximo de %.1fs', operation, self.timeout)
            raise Unavailable(f'{operation} no respondió a tiempo')

    def _run_parallel(self, operation: str, tasks: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
        """
        Ejecuta varias funciones independientes en paralelo.

        Args:
            operation: Nombre para logs y errores
            tasks: {nombre: función sin argumentos}

        Returns:
            {nombre: resultado}

        Raises:
            Unavailable: Si alguna tarea supera el tiempo máximo
        """
        futures = {key: _executor.submit(fn) for key, fn in tasks.items()}
        results = {}
        try:
            for key, future in futures.items():
                results[key] = future.result(timeout=self.timeout)
        except FutureTimeout:
            for future in futures.values():
                future.cancel()
            self.logger.error('%s superó el tiempo máximo de %.1fs', operation, self.timeout)
            raise Unavailable(f'{operation} no respondió a tiempo')
        return results
