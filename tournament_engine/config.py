import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    return int(raw)


DEFAULT_MATCH_DURATION_MINUTES = _env_int("ENGINE_DEFAULT_MATCH_MINUTES", 90)
DEFAULT_BREAK_DURATION_MINUTES = _env_int("ENGINE_DEFAULT_BREAK_MINUTES", 15)

# When true the conflict detector enumerates every conflict instead of stopping at the first one
REPORT_ALL_CONFLICTS = os.getenv("ENGINE_REPORT_ALL_CONFLICTS", "false").lower() in ("true", "1", "yes")
