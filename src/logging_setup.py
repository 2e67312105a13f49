import logging
import contextvars
from logging.handlers import RotatingFileHandler

from .config import env_str, env_int


# Per-message (or per-export) trace id injected into every log record.
_trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(trace_id)s] %(name)s: %(message)s"


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get("-")  # type: ignore[attr-defined]
        return True


def set_trace_id(trace_id: str) -> contextvars.Token:
    return _trace_id_var.set(trace_id)


def reset_trace_id(token: contextvars.Token) -> None:
    try:
        _trace_id_var.reset(token)
    except ValueError:
        # Token created in another context (e.g. a task that outlived its parent).
        pass


def get_trace_id() -> str:
    return _trace_id_var.get("-")


def setup_logging() -> None:
    """Configure console + rotating log file, both tagged with the trace id.

    - Console level: LOG_LEVEL (default INFO)
    - File level: LOG_FILE_LEVEL (default DEBUG), path LOG_FILE (default log.txt)

    The file handler hangs off the 'subbot' logger only, so discord.py gateway
    chatter and Google API client noise stay out of it.
    """
    root = logging.getLogger()
    if getattr(root, "_subbot_logging_configured", False):
        return

    console_level = env_str("LOG_LEVEL", "INFO").upper()
    file_level = env_str("LOG_FILE_LEVEL", "DEBUG").upper()
    log_file = env_str("LOG_FILE", "log.txt")

    max_bytes = env_int("LOG_MAX_BYTES", 5_000_000)
    backups = env_int("LOG_BACKUPS", 2)

    fmt = logging.Formatter(LOG_FORMAT)
    flt = TraceIdFilter()

    root.setLevel(getattr(logging, console_level, logging.INFO))

    sh = logging.StreamHandler()
    sh.setLevel(getattr(logging, console_level, logging.INFO))
    sh.setFormatter(fmt)
    sh.addFilter(flt)
    root.addHandler(sh)

    sb = logging.getLogger("subbot")
    sb.setLevel(logging.DEBUG)
    sb.propagate = True

    try:
        fh = RotatingFileHandler(
            log_file,
            maxBytes=max(0, int(max_bytes)),
            backupCount=max(0, int(backups)),
            encoding="utf-8",
        )
        fh.setLevel(getattr(logging, file_level, logging.DEBUG))
        fh.setFormatter(fmt)
        fh.addFilter(flt)
        sb.addHandler(fh)
    except OSError:
        # Read-only FS: console logging only.
        sb.warning("File logging disabled, cannot open %s", log_file)

    for noisy in (
        "discord",
        "discord.gateway",
        "discord.http",
        "googleapiclient",
        "googleapiclient.discovery_cache",
        "google.auth",
        "aiohttp.access",
    ):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root._subbot_logging_configured = True  # type: ignore[attr-defined]
