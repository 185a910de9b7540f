import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, MutableMapping, Tuple

from pythonjsonlogger import jsonlogger


LOG_FILE_NAME = "buildmatrix.log"
VARIANT_LOGGER_NAME = "buildmatrix.variant"

# Record attributes set by VariantLoggerAdapter.
_VARIANT_FIELDS = ("configuration", "phase")


class VariantJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for field in _VARIANT_FIELDS:
            value = getattr(record, field, None)
            if value:
                log_record[field] = value

        if record.exc_info and "exception" not in log_record:
            log_record["exception"] = self.formatException(record.exc_info)


class VariantTextFormatter(logging.Formatter):
    """Prefixes the message with ``[configuration/phase]`` when known."""

    def format(self, record: logging.LogRecord) -> str:
        tags = [getattr(record, field, None) for field in _VARIANT_FIELDS]
        tags = [tag for tag in tags if tag]
        record.variant = f"[{'/'.join(tags)}] " if tags else ""
        return super().format(record)


def get_logging_config(
    log_level: str = "INFO",
    json_format: bool = False,
    log_dir: Optional[str] = None
) -> Dict[str, Any]:
    formatter = "json" if json_format else "text"
    handlers: Dict[str, Dict[str, Any]] = {
        # stdout is reserved for the report and failure excerpts
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "stream": "ext://sys.stderr",
            "formatter": formatter,
        }
    }

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "filename": str(log_path / LOG_FILE_NAME),
            "maxBytes": 10485760,
            "backupCount": 3,
            "formatter": formatter,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "()": VariantTextFormatter,
                "format": "%(asctime)s %(levelname)-7s %(variant)s%(message)s",
                "datefmt": "%H:%M:%S",
            },
            "json": {
                "()": VariantJsonFormatter,
                "format": "%(timestamp)s %(level)s %(name)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": {
            "buildmatrix": {
                "handlers": list(handlers),
                "level": "DEBUG" if log_dir else log_level,
                "propagate": False,
            },
            "asyncio": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_dir: Optional[str] = None
) -> None:
    logging.config.dictConfig(
        get_logging_config(log_level=log_level, json_format=json_format, log_dir=log_dir)
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class VariantLoggerAdapter(logging.LoggerAdapter):
    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_variant_logger(
    configuration: str,
    phase: Optional[str] = None
) -> VariantLoggerAdapter:
    extra = {"configuration": configuration}
    if phase:
        extra["phase"] = phase
    return VariantLoggerAdapter(get_logger(VARIANT_LOGGER_NAME), extra)
