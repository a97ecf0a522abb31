"""Log redaction for settings that may carry credentials."""

import logging


class SecureLogFilter(logging.Filter):
    """Filter sensitive data from log messages."""

    SENSITIVE_PATTERNS = [
        "password",
        "secret",
        "token",
        "credential",
        "auth",
        "pac_params",
        "extra_pac",
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive data from log record."""
        if record.args:
            if isinstance(record.args, dict):
                record.args = self._redact_dict(record.args)
            else:
                record.args = tuple(self._redact_arg(arg) for arg in record.args)
        return True

    def _is_sensitive(self, text: str) -> bool:
        text = text.lower()
        return any(p in text for p in self.SENSITIVE_PATTERNS)

    def _redact_arg(self, arg):
        """Redact sensitive argument."""
        if isinstance(arg, dict):
            return self._redact_dict(arg)
        if isinstance(arg, str) and self._is_sensitive(arg):
            return "[REDACTED]"
        return arg

    def _redact_dict(self, d: dict) -> dict:
        """Redact sensitive keys from dict."""
        result = {}
        for key, value in d.items():
            if isinstance(key, str) and self._is_sensitive(key):
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = self._redact_dict(value)
            else:
                result[key] = value
        return result


def install_secure_logging() -> None:
    """Install secure log filter on every root handler."""
    secure_filter = SecureLogFilter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(secure_filter)
