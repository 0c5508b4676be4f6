# cotizador/logging_config.py
"""
Logging applicatif, configuré une fois dans le lifespan.
Lignes JSON en production (clés `extra` incluses), texte simple sinon.
"""
import json
import logging

from cotizador.config import settings

EXTRA_KEYS = ("quote_id", "client_id", "email", "state", "route", "updated_fields")
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonLineFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({k: getattr(record, k) for k in EXTRA_KEYS if hasattr(record, k)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "", json_logs=None) -> None:
    level = (level or settings.LOG_LEVEL or "INFO").upper()
    if json_logs is None:
        json_logs = settings.is_production

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))
    logging.basicConfig(level=getattr(logging, level, logging.INFO), handlers=[handler], force=True)

    for name in ("urllib3", "httpx", "httpcore", "azure", "hpack"):
        logging.getLogger(name).setLevel(logging.WARNING)
