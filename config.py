import os, logging, secrets
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT : str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_handler : Optional[logging.Handler] = None


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


class Config:
    SECRET_KEY : str = os.getenv('SECRET_KEY', secrets.token_hex(16))
    SQLALCHEMY_DATABASE_URI : str = os.getenv('DATABASE_URL', 'sqlite:///data.db')
    SQLALCHEMY_TRACK_MODIFICATIONS : bool = False
    STORAGE_BACKEND : str = os.getenv('STORAGE_BACKEND', 'sql')
    API_BASE_URL : str = os.getenv('API_BASE_URL', 'http://localhost:3000')
    API_TIMEOUT : float = float(os.getenv('API_TIMEOUT', '10'))
    LOG_LEVEL : str = os.getenv('LOG_LEVEL', 'INFO')
    PORT : int = int(os.getenv('PORT', '3000'))
    FRONTEND_PORT : int = int(os.getenv('FRONTEND_PORT', '3030'))
    CORS_ORIGINS : list[str] = []
    TESTING : bool = False


class DevelopmentConfig(Config):
    CORS_ORIGINS : list[str] = _split_origins(os.getenv('CORS_ORIGINS', 'http://localhost:3030'))


class ProductionConfig(Config):
    CORS_ORIGINS : list[str] = _split_origins(os.getenv('CORS_ORIGINS', 'https://inkpost.example.com'))


class TestingConfig(Config):
    TESTING : bool = True
    SECRET_KEY : str = 'testing'
    SQLALCHEMY_DATABASE_URI : str = 'sqlite://'
    STORAGE_BACKEND : str = 'sql'
    CORS_ORIGINS : list[str] = ['http://localhost:3030']


CONFIGS : dict[str, type[Config]] = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config(name: Optional[str] = None) -> type[Config]:
    '''Resolve a config class by name, falling back to APP_ENV / FLASK_ENV.'''
    name = name or os.getenv('APP_ENV') or os.getenv('FLASK_ENV') or 'development'
    try:
        return CONFIGS[name.lower()]
    except KeyError:
        raise ValueError(f'Unknown config {name!r}, expected one of {sorted(CONFIGS)}') from None


def configure_logging(level: str = 'INFO') -> None:
    '''Install one stream handler on the root logger; later calls only change the level.'''
    global _handler
    root : logging.Logger = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)
    root.setLevel(level.upper())
