# app/logging_config.py
"""
Logging estructurado (JSON) de la API.
Una línea por evento; los campos `extra` (ip, ms, event_id...) se añaden al objeto.
"""

import logging
import os
import sys
from pythonjsonlogger import jsonlogger

LOG_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(funcName)s %(lineno)d"
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy", "stripe", "httpx")


def setup_logging(level: str | None = None):
    """Engancha un único handler JSON en stdout al logger raíz"""
    root = logging.getLogger()

    # uvicorn --reload y los tests importan el módulo varias veces
    if not any(getattr(h, "_baby_control", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler._baby_control = True
        handler.setFormatter(jsonlogger.JsonFormatter(
            fmt=LOG_FIELDS,
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={"levelname": "level", "asctime": "ts"},
        ))
        root.addHandler(handler)

    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


# Logger global
logger = setup_logging()
