# sitestats/utils/logger_config.py
import logging
import os
import json
import socket
from datetime import datetime, timezone
from typing import Optional

# Attributi standard di LogRecord da non duplicare nel JSON
_RESERVED_ATTRS = {
    "args", "exc_info", "exc_text", "msg", "message",
    "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "name", "thread",
    "threadName", "processName", "process", "asctime",
    "stack_info", "taskName",
}


class JsonFormatter(logging.Formatter):
    """Formatter JSON per ambienti cloud/prod."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "path": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
            "service": os.getenv("SERVICE_NAME", "sitestats"),
            "host": socket.gethostname()
        }

        # Aggiungi eccezione se presente
        if record.exc_info:
            log_data["exception"] = str(record.exc_info[1])

        # Aggiungi campi extra
        for k, v in record.__dict__.items():
            if k not in _RESERVED_ATTRS:
                try:
                    json.dumps({k: v})  # Test serializzabilità
                    log_data[k] = v
                except (TypeError, OverflowError):
                    log_data[k] = str(v)

        return json.dumps(log_data)


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None):
    """
    Configura il logging con formato configurabile e contesto aggiuntivo.

    Args:
        log_level: Livello di log opzionale, altrimenti usa LOG_LEVEL dall'ambiente
        log_format: "text" o "json", altrimenti usa LOG_FORMAT dall'ambiente
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("LOG_FORMAT", "text")).lower()

    if fmt == "json":
        formatter = JsonFormatter()
    else:
        # Formato leggibile per dev/debug
        formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
        )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Rimuovi handler esistenti per evitare duplicati
    for hdlr in root_logger.handlers[:]:
        root_logger.removeHandler(hdlr)

    root_logger.addHandler(handler)

    logging.info("Logging inizializzato (livello: %s, formato: %s)", level, fmt)
