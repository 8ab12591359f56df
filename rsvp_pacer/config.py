"""Runtime configuration, environment overrides, and .env loading.

WHY: Cache sizes, library limits, and API bind settings differ between a
laptop and a shared server. Keeping them as plain module-level values
(not buried in logic) makes them easy to find and override without
touching code.

HOW: python-dotenv loads the .env file on import. Each setting is read
with os.getenv and a documented default. env_int() and env_bool() parse
values and raise a clear ValueError when a variable is malformed.

RULES:
- Every setting has a default that works without a .env file
- Malformed integers raise ValueError naming the variable
- Booleans accept true/false, 1/0, or yes/no in any case; anything
  else is an error
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    RULES:
    - Missing or blank → default
    - Non-integer text raises ValueError with the variable name
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(
            "Environment variable {} must be an integer, got '{}'".format(name, raw)
        )


def env_bool(name: str, default: bool) -> bool:
    """Read a true/false environment variable."""
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("true", "1", "yes"):
        return True
    if raw in ("false", "0", "no"):
        return False
    raise ValueError(
        "Environment variable {} must be true or false, got '{}'".format(name, raw)
    )


# ---------------------------------------------------------------------------
# Caches and library
# ---------------------------------------------------------------------------

TOKEN_CACHE_SIZE = env_int("RSVP_TOKEN_CACHE_SIZE", 10)
FRAME_CACHE_SIZE = env_int("RSVP_FRAME_CACHE_SIZE", 6)
PREFETCH_NEXT_CHAPTER = env_bool("RSVP_PREFETCH_NEXT_CHAPTER", True)

LIBRARY_TTL_SECONDS = env_int("RSVP_LIBRARY_TTL_SECONDS", 3600)
MAX_BOOKS = env_int("RSVP_MAX_BOOKS", 50)

# ---------------------------------------------------------------------------
# API server
# ---------------------------------------------------------------------------

API_HOST = os.getenv("RSVP_API_HOST", "127.0.0.1")
API_PORT = env_int("RSVP_API_PORT", 8000)
LOG_LEVEL = os.getenv("RSVP_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
