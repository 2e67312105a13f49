import os
from dotenv import load_dotenv

load_dotenv()

def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return int(v)

def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == '':
        return default
    v = v.strip().lower()
    if v in ('1','true','yes','y','on'): return True
    if v in ('0','false','no','n','off'): return False
    return default


def env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


DISCORD_TOKEN = env_str("DISCORD_TOKEN", "")

# Campaign config (submit channels, bounds, base ids, sheet names).
# Rewritten after every export that produced rows.
CONFIG_PATH = env_str("CONFIG_PATH", "config.json")
EXPORTS_DIR = env_str("EXPORTS_DIR", "exports")

EXPORT_INTERVAL_SEC = env_float("EXPORT_INTERVAL_SEC", 60 * 60)
REPLY_AUTO_DELETE_SEC = env_int("REPLY_AUTO_DELETE_SEC", 5 * 60)

# Service account JSON for the Sheets sink. Empty -> sink disabled.
GOOGLE_CREDENTIALS_PATH = env_str(
    "GOOGLE_CREDENTIALS_PATH", env_str("GOOGLE_APPLICATION_CREDENTIALS", "")
)

LOG_SUBMISSIONS_TO_CHANNEL = env_bool("LOG_SUBMISSIONS_TO_CHANNEL", True)

KEEPALIVE_ENABLED = env_bool("KEEPALIVE_ENABLED", True)
KEEPALIVE_PORT = env_int("KEEPALIVE_PORT", env_int("PORT", 8080))
