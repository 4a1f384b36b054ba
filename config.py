"""
Configuration module for the DX Cluster app.
Centralizes all configuration settings and environment variables.
"""

import os
from dotenv import load_dotenv
from typing import Optional

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration class."""

    # Flask Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_ENV') == 'development'
    TESTING = False
    PORT = int(os.getenv('PORT', 8087))  # Default to production port

    # Station Configuration
    CALLSIGN = os.getenv('CALLSIGN', 'N0CALL')

    # Spot feed endpoints
    DX_CLUSTER_SOURCE = os.getenv('DX_CLUSTER_SOURCE', 'auto')
    DXSPIDER_PROXY_URL = os.getenv('DXSPIDER_PROXY_URL', 'https://dxspider-proxy-production-1ec7.up.railway.app')
    HAMQTH_URL = os.getenv('HAMQTH_URL', 'https://www.hamqth.com/dxc_csv.php?limit=50')
    DXCACHE_URL = os.getenv('DXCACHE_URL', 'https://api.wa0o.com/dxcache/spots')
    POTA_URL = os.getenv('POTA_URL', 'https://api.pota.app/spot/activator')
    SOTA_URL = os.getenv('SOTA_URL', 'https://api2.sota.org.uk/api/spots/-1/all?limit=50')

    # Polling Configuration
    ENABLE_POLLING = _env_bool('ENABLE_POLLING', True)
    LOW_MEMORY_MODE = _env_bool('LOW_MEMORY_MODE', False)
    SPOT_POLL_INTERVAL = int(os.getenv('SPOT_POLL_INTERVAL', 30))  # 30 seconds
    LOW_MEMORY_POLL_INTERVAL = int(os.getenv('LOW_MEMORY_POLL_INTERVAL', 60))  # 60 seconds

    # Spot Store Configuration
    SPOT_RETENTION_MINUTES = int(os.getenv('SPOT_RETENTION_MINUTES', 30))
    SPOT_STORE_MAX = int(os.getenv('SPOT_STORE_MAX', 200))
    MAX_LIST_SPOTS = 500
    MAX_PATHS = 200
    LOW_MEMORY_MAX_LIST_SPOTS = 50
    LOW_MEMORY_MAX_PATHS = 25

    # Database Configuration
    DATABASE_PATH = os.getenv('DATABASE_PATH', 'data/dx_cluster.db')

    # Cache Configuration
    PROPAGATION_CACHE_TTL = int(os.getenv('PROPAGATION_CACHE_TTL', 600))  # 10 minutes
    SOLAR_CACHE_TTL = int(os.getenv('SOLAR_CACHE_TTL', 300))  # 5 minutes

    # Flask-Caching Configuration
    CACHE_TYPE = 'SimpleCache'
    CACHE_DEFAULT_TIMEOUT = 300  # 5 minutes default
    CACHE_KEY_PREFIX = 'dx_cluster_'

    # Logging
    LOG_FILE = os.getenv('LOG_FILE', 'logs/dx_cluster.log')

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration values."""
        errors = []

        if cls.SPOT_POLL_INTERVAL <= 0:
            errors.append("SPOT_POLL_INTERVAL must be positive")

        if cls.LOW_MEMORY_POLL_INTERVAL <= 0:
            errors.append("LOW_MEMORY_POLL_INTERVAL must be positive")

        if cls.SPOT_RETENTION_MINUTES <= 0:
            errors.append("SPOT_RETENTION_MINUTES must be positive")

        if cls.SPOT_STORE_MAX <= 0:
            errors.append("SPOT_STORE_MAX must be positive")

        return errors

    @classmethod
    def poll_interval(cls) -> int:
        """Get the spot polling interval, lengthened in low memory mode."""
        return cls.LOW_MEMORY_POLL_INTERVAL if cls.LOW_MEMORY_MODE else cls.SPOT_POLL_INTERVAL

    @classmethod
    def view_limits(cls) -> tuple[int, int]:
        """Get (max list spots, max paths) for the derived views."""
        if cls.LOW_MEMORY_MODE:
            return cls.LOW_MEMORY_MAX_LIST_SPOTS, cls.LOW_MEMORY_MAX_PATHS
        return cls.MAX_LIST_SPOTS, cls.MAX_PATHS

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production mode."""
        return not cls.DEBUG and not cls.TESTING


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    PORT = 5001  # Development port


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    PORT = 8087  # Production port

    @classmethod
    def validate(cls) -> list[str]:
        """Additional validation for production."""
        errors = super().validate()

        # Only warn about SECRET_KEY in production, don't fail
        if cls.SECRET_KEY == 'dev-secret-key-change-in-production':
            print("Warning: SECRET_KEY is using default value - consider setting a secure key in production")

        return errors


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DATABASE_PATH = ':memory:'  # Use in-memory database for tests
    ENABLE_POLLING = False


# Configuration mapping
config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig  # Default to production
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration based on environment."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    return config_map.get(config_name, config_map['default'])
