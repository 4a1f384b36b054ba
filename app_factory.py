"""
Flask Application Factory
Creates and configures the Flask application with all necessary components.
"""

import atexit
import logging
from flask import Flask
from flask_cors import CORS

from config import Config, get_config
from database import init_database
from dx_cluster import DXClusterService
from utils.background_tasks import setup_background_tasks
from utils.cache_manager import create_cache_manager
from utils.logging_config import setup_logging
from routes.api import api_bp, cache

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    """Create and configure the Flask application."""
    if isinstance(config_class, str):
        config_class = get_config(config_class)

    setup_logging(log_file=config_class.LOG_FILE if config_class.is_production() else None)

    for problem in config_class.validate():
        logger.warning(f"Configuration problem: {problem}")

    app = Flask(__name__)
    app.config.from_object(config_class)

    logger.info("Initializing services...")

    CORS(app)
    cache.init_app(app)

    services = initialize_services(app, config_class)

    app.register_blueprint(api_bp, url_prefix='/api')
    logger.info("Blueprints registered")

    app.extensions['cache_manager'] = services['cache_manager']
    app.config['DX_CLUSTER'] = services['dx_cluster']
    app.config['TASK_MANAGER'] = services['task_manager']

    if services['task_manager'] is not None:
        services['task_manager'].start_all()

    atexit.register(shutdown_services, services)

    logger.info("Application created successfully")
    return app


def initialize_services(app, config_class):
    """Initialize all application services."""
    services = {}

    try:
        database = init_database(config_class.DATABASE_PATH)
        services['database'] = database
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    # The poll scheduler sweeps expired cache entries when it runs; otherwise
    # the cache manager keeps its own cleanup thread
    polling = bool(config_class.ENABLE_POLLING)
    cleanup_interval = None if polling or config_class.TESTING else 300
    services['cache_manager'] = create_cache_manager(config_class, cleanup_interval=cleanup_interval)

    try:
        services['dx_cluster'] = DXClusterService(
            config_class,
            database=services['database'],
            cache_manager=services['cache_manager'],
        )
        logger.info("DX cluster service initialized")
    except Exception as e:
        logger.error(f"Failed to initialize DX cluster service: {e}")
        raise

    services['task_manager'] = configure_background_tasks(services, config_class) if polling else None
    return services


def configure_background_tasks(services, config_class):
    """Configure the spot poll and cache housekeeping."""
    task_manager = setup_background_tasks(
        services['dx_cluster'].poll_task,
        config_class.poll_interval(),
        cache_cleanup=services['cache_manager'].cleanup_expired,
    )
    logger.info(f"Background tasks configured (poll every {config_class.poll_interval()}s)")
    return task_manager


def shutdown_services(services):
    """Stop background work and release resources at process exit."""
    task_manager = services.get('task_manager')
    if task_manager is not None:
        task_manager.stop_all()
    services['cache_manager'].shutdown()
    services['dx_cluster'].shutdown()
    services['database'].close()
