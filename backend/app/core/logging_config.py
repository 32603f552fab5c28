import logging
import logging.config


def build_logging_config(level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(levelname)s %(asctime)s [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            # Keeps tracebacks attached to persistence and upstream failures.
            "detailed": {
                "format": "%(levelname)s %(asctime)s [%(name)s] [%(module)s:%(lineno)d] - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
            "error": {
                "formatter": "detailed",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": "ERROR",
            },
        },
        "loggers": {
            "": {
                "handlers": ["default", "error"],
                "level": "WARNING",
            },
            "app": {
                "handlers": ["default", "error"],
                "level": level.upper(),
                "propagate": False,
            },
        },
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(build_logging_config(level))
