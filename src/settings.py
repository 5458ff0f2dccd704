"""Static configuration for zodiacast.

All user-editable settings (catalog, generation, schedule, logging) live in
a single JSON file for quick edits without touching Python. Secrets stay in
the environment (.env).
"""

import json
import os

from core.config import Catalog, GenerationConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("ZODIACAST_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional astrologer. Write a positive and motivating horoscope for today."
)
DEFAULT_USER_PROMPT = (
    "Write a detailed horoscope for today for the sign {category} {language_instruction}. "
    "The horoscope should be positive, motivating and include advice for the day."
)


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Category and language enumerations, in delivery order.
_catalog = _CONFIG.get("catalog", {})
CATALOG = Catalog.from_mapping(_catalog.get("categories", []), _catalog.get("languages", {}))
if not CATALOG.categories or not CATALOG.languages:
    raise RuntimeError("catalog.categories and catalog.languages must not be empty")

# Text generation settings.
_generation = _CONFIG.get("generation", {})
GENERATION = GenerationConfig(
    model=_generation.get("model", "gpt-3.5-turbo"),
    max_tokens=int(_generation.get("max_tokens", 800)),
    system_prompt=_generation.get("system_prompt", DEFAULT_SYSTEM_PROMPT),
    user_prompt=_generation.get("user_prompt", DEFAULT_USER_PROMPT),
    persist_fallback=bool(_generation.get("persist_fallback", True)),
)

# Daily fanout schedule (crontab syntax). Timezone defaults to the host's.
_schedule = _CONFIG.get("schedule", {})
FANOUT_CRON = _schedule.get("cron", "0 8 * * *")
SCHEDULE_TIMEZONE = _schedule.get("timezone")

# Where to store the SQLite database.
_database = _CONFIG.get("database", {})
DB_PATH = _database.get("path", "zodiacast.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
