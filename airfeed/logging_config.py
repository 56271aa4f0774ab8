import logging, logging.config

# Chatty client libraries only surface warnings unless debugging
QUIET_LOGGERS = ("celery", "kombu", "amqp", "httpx", "httpcore")


def setup_logging(level: str = "INFO", access_log: bool = True, debug: bool = False):
    level = level.upper()
    library_level = "DEBUG" if debug else "WARNING"
    loggers = {
        "airfeed":        {"level": level},
        "uvicorn.error":  {"level": level, "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": ("INFO" if access_log else "WARNING"),
                           "handlers": ["access"], "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": library_level, "handlers": ["console"], "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                        "datefmt": "%Y-%m-%d %H:%M:%S"},
            "access_simple": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
            "access":  {"class": "logging.StreamHandler", "formatter": "access_simple"},
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console"]},
    })
