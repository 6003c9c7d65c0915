import logging
import os
import sys

_SECRET_ENV = ("AWS_SECRET_ACCESS_KEY", "AWS_ACCESS_KEY_ID", "AWS_SESSION_TOKEN", "AZURE_CLIENT_SECRET")
REDACTED = "[REDACTED]"


class RedactingFilter(logging.Filter):
    """Masks credential values that leak into log messages."""

    def __init__(self, secrets=None):
        super().__init__()
        self._secrets = secrets

    def _values(self):
        if self._secrets is not None:
            return [s for s in self._secrets if s]
        return [os.environ[k] for k in _SECRET_ENV if os.environ.get(k)]

    def filter(self, record: logging.LogRecord) -> bool:
        values = self._values()
        if not values:
            return True
        msg = record.getMessage()
        for v in values:
            msg = msg.replace(v, REDACTED)
        record.msg = msg
        record.args = None
        return True


def get_logger(name: str | None = None):
    root = logging.getLogger("kmsigner")
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s %(message)s")
        h.setFormatter(fmt)
        h.addFilter(RedactingFilter())
        root.addHandler(h)
        root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    return root.getChild(name) if name else root
