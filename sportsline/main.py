# ==============================================================================
# APLICACIÓN FLASK - Fábrica de la aplicación
# ==============================================================================
# create_app() arma la app con:
#   - Configuración (Settings) y nivel de logging
#   - Contenedor de dependencias en app.extensions['sportsline']
#   - Profiling, rate limit, headers de seguridad y errores JSON
#   - GET /health
#
# Las rutas de recursos (pedidos, productos, usuarios) se registran sobre
# esta app usando los servicios del contenedor.
# ==============================================================================

import logging

from flask import Flask, jsonify

from sportsline import __version__
from sportsline.app_container import AppContainer
from sportsline.config import APP_NAME, Settings
from sportsline.middlewares import (
    EXTENSION_KEY,
    init_rate_limiter,
    init_security_headers,
    register_error_handlers,
)
from sportsline.models import utc_now_iso
from sportsline.performance_logger import configure_profiling, init_profiling

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None) -> Flask:
    """
    Crea y configura la aplicación Flask.

    Args:
        settings: Configuración explícita (tests); por defecto Settings.from_env()

    Returns:
        Aplicación lista para servir
    """
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    app = Flask(__name__)
    app.config['SPORTSLINE_SETTINGS'] = settings

    # ═══════════════════════════════════════════════════════════════════════
    # CONTENEDOR DE DEPENDENCIAS
    # ═══════════════════════════════════════════════════════════════════════
    app.extensions[EXTENSION_KEY] = AppContainer(settings)

    # ═══════════════════════════════════════════════════════════════════════
    # PROFILING, RATE LIMIT, HEADERS Y ERRORES
    # ═══════════════════════════════════════════════════════════════════════
    configure_profiling(settings.profiling)
    init_profiling(app)
    init_rate_limiter(app, settings.rate_limit_max, settings.rate_limit_window)
    init_security_headers(app)
    register_error_handlers(app)

    @app.route('/health')
    def health():
        return jsonify({
            'success': True,
            'status': 'ok',
            'service': APP_NAME,
            'version': __version__,
            'timestamp': utc_now_iso(),
        })

    logger.info('Aplicación %s %s inicializada (datos en %s)', APP_NAME, __version__, settings.data_dir)
    return app
