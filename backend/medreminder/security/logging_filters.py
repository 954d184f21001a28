"""Logging filters that scrub sync credentials."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization:\s*(?:Basic|Bearer)\s+[\w\.\-+/=]+"
    r"|(?:patient_)?password\"?\s*[:=]\s*\"?[^\"\s,}]+\"?)",
    re.IGNORECASE,
)


class SensitiveFilter(logging.Filter):
    """Replace credentials in log messages with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            message = record.getMessage() if record.args else record.msg
            scrubbed = _SENSITIVE_PATTERN.sub("**REDACTED**", message)
            if scrubbed != message:
                record.msg = scrubbed
                record.args = None
        return True


def install_sensitive_filter(*logger_names: str) -> None:
    for name in logger_names or ("uvicorn", "uvicorn.access", "uvicorn.error", "", "httpx"):
        target = logging.getLogger(name)
        if not any(isinstance(flt, SensitiveFilter) for flt in target.filters):
            target.addFilter(SensitiveFilter())


__all__ = ["SensitiveFilter", "install_sensitive_filter"]
