# app/core/logging_config.py

from logging.config import dictConfig

from app.core.config import settings


def build_logging_config(level: str, sql_level: str) -> dict:
    """
    Конфигурация для dictConfig. Модули приложения пишут в дерево логгеров "app.*",
    уровень которого задается LOG_LEVEL.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "format": "%(asctime)s - access - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access_console": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "app": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["access_console"], "level": "INFO", "propagate": False},
            "sqlalchemy.engine": {"handlers": ["console"], "level": sql_level, "propagate": False},
            "apscheduler": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging():
    """Применяет конфигурацию логирования из настроек."""
    dictConfig(build_logging_config(settings.LOG_LEVEL.upper(), settings.SQL_LOG_LEVEL.upper()))
