import logging
import logging.config
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "app.log"

# Chatty client libraries, held at WARNING regardless of LOG_LEVEL.
QUIET_LOGGERS = ("httpx", "openai")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class ColourizedFormatter(logging.Formatter):
    """Colours the level name of console records."""

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLORS.get(record.levelno)
        if colour is None:
            return super().format(record)
        plain = record.levelname
        record.levelname = f"{colour}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # The file handler formats the same record.
            record.levelname = plain


def _handlers(log_dir: str | None) -> dict[str, dict]:
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "coloured",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": os.path.join(log_dir, LOG_FILE_NAME),
            "formatter": "plain",
        }
    return handlers


def get_logging_config(log_level: str | None = None, log_dir: str | None = None) -> dict:
    """dictConfig for the app and for uvicorn. Arguments fall back to LOG_LEVEL and LOG_DIR."""
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    handlers = _handlers(log_dir if log_dir is not None else os.getenv("LOG_DIR"))
    handler_names = list(handlers)

    loggers: dict[str, dict] = {"": {"handlers": handler_names, "level": level}}
    loggers.update({name: {"level": "WARNING"} for name in QUIET_LOGGERS})
    loggers.update(
        {name: {"handlers": handler_names, "level": "INFO", "propagate": False} for name in SERVER_LOGGERS}
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "coloured": {"()": "chat_ledger.logger.ColourizedFormatter", "format": LOG_FORMAT},
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(log_level: str | None = None, log_dir: str | None = None) -> None:
    logging.config.dictConfig(get_logging_config(log_level, log_dir))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
