"""
Structured logging for a service that handles patient health data.

JSON lines in production, readable text in development. Every record passes
through PatientContextFilter before it is formatted:
- `patient_id` in `extra_fields` (and in the message text) is replaced by a
  stable keyed pseudonym, so log lines for one patient still correlate
  without exposing the identity provider's id
- free-text health fields (task notes, symptom maps) are redacted
"""
import hashlib
import hmac
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from core.config import settings

REDACTED_FIELDS = frozenset({"notes", "symptoms"})
REDACTED = "[redacted]"


def patient_ref(patient_id: str) -> str:
    """Keyed pseudonym for a patient id, e.g. 'pt_3f9a0c1d22be'."""
    digest = hmac.new(
        settings.SECRET_KEY.encode("utf-8"), patient_id.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"pt_{digest[:12]}"


class PatientContextFilter(logging.Filter):
    """Pseudonymise patient ids and strip health free text from log context."""

    def __init__(self, hash_patient_ids: bool = True):
        super().__init__()
        self.hash_patient_ids = hash_patient_ids

    def filter(self, record: logging.LogRecord) -> bool:
        fields = getattr(record, "extra_fields", None)
        if not fields:
            return True

        fields = dict(fields)
        for key in REDACTED_FIELDS & fields.keys():
            fields[key] = REDACTED

        patient_id = fields.get("patient_id")
        if self.hash_patient_ids and isinstance(patient_id, str) and patient_id:
            ref = patient_ref(patient_id)
            fields["patient_id"] = ref
            # Messages are pre-formatted f-strings
            if isinstance(record.msg, str) and not record.args:
                record.msg = record.msg.replace(patient_id, ref)

        record.extra_fields = fields
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text with the record's context appended as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "extra_fields", None)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
        return line


def setup_logging():
    """Configure the root logger; JSON in production or when LOG_FORMAT=json."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = ContextTextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(PatientContextFilter(settings.LOG_HASH_PATIENT_IDS))
    root_logger.addHandler(console_handler)

    # SQL echo would print bound parameters (patient ids, notes)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # Requests are logged by the app's own middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger
