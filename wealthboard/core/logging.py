import json
import logging

from wealthboard.core.config import settings
from wealthboard.core.context import get_request_id, get_user_id

SERVICE_NAME = "wealthboard"

NOISY_LOGGERS = ("uvicorn.access", "arq", "asyncio", "sqlalchemy.engine")

class JsonFormatter(logging.Formatter):
    """
    Одна JSON-строка на запись: время, уровень, логгер, сообщение,
    плюс request_id и user_id текущего запроса, если они есть.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "env": settings.APP.ENV,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": get_request_id(),
        }

        user_id = get_user_id()
        if user_id is not None:
            payload["user_id"] = str(user_id)

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)

def setup_logging(level: str | None = None) -> None:
    """Ставит JSON formatter на root logger и приглушает шумные логгеры."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level or settings.APP.LOG_LEVEL)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
