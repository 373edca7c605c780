import json
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone

from ppvgate.core.config import settings

# Chatty client libraries; their request lines duplicate outbound_call_* events
QUIET_LOGGERS = ("httpx", "httpcore", "stripe", "urllib3")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; only whitelisted extras are emitted (no card data, no tokens)."""

    EXTRA_FIELDS = (
        "request_id", "path", "method", "status_code", "latency_ms",
        "event_id", "user", "session_id", "payment_id", "record_id",
        "notification_type", "notification_id", "kind", "reason", "error",
        "attempt", "max_attempts", "delay_seconds", "count",
        "breaker_name", "old_state", "new_state",
    )

    def __init__(self, service: str = "ppvgate", env: str | None = None):
        super().__init__()
        self.service = service
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.env:
            payload["env"] = self.env

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    """Route the root logger (API process and Celery workers) through JsonFormatter."""
    formatter = JsonFormatter(env=settings.app_env)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
