"""
Runtime configuration - every knob is read from the environment (a local .env is honoured).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Versioned record store (key slots + legal corpus)
DB_PATH = os.getenv("DB_PATH", "./data/verobrix.db")

# Flat key-value storage for profiles, creditors, vault documents and the rest
LOCAL_STORAGE_PATH = os.getenv("LOCAL_STORAGE_PATH", "./data/local_storage.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Session state
NOTIFICATION_TIMEOUT_MS = int(os.getenv("NOTIFICATION_TIMEOUT_MS", "5000"))
DEFAULT_TAB = os.getenv("DEFAULT_TAB", "dashboard")

# Drafting service (local Ollama models)
DRAFTING_MODEL = os.getenv("DRAFTING_MODEL", "llama3.1:8b")
DRAFTING_VISION_MODEL = os.getenv("DRAFTING_VISION_MODEL", "llava:13b")
DRAFTING_TEMPERATURE = float(os.getenv("DRAFTING_TEMPERATURE", "0.3"))

# Corpus feeds
FEED_REQUEST_TIMEOUT_SEC = int(os.getenv("FEED_REQUEST_TIMEOUT_SEC", "30"))
FEED_USER_AGENT = os.getenv("FEED_USER_AGENT", "verobrix-corpus-seeder/1.0")

# Version string
VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_db_path():
    """Record store path, re-read so tests can point it elsewhere."""
    return os.getenv("DB_PATH", DB_PATH)


def get_local_storage_path():
    """Local storage path, re-read so tests can point it elsewhere."""
    return os.getenv("LOCAL_STORAGE_PATH", LOCAL_STORAGE_PATH)


def get_notification_timeout_ms():
    """Get the notification auto-dismiss delay in milliseconds."""
    return int(os.getenv("NOTIFICATION_TIMEOUT_MS", str(NOTIFICATION_TIMEOUT_MS)))


def ensure_db_directory(path: str = None):
    """Ensure the directory holding a database file exists."""
    Path(path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if NOTIFICATION_TIMEOUT_MS < 1:
        issues.append("NOTIFICATION_TIMEOUT_MS must be >= 1")

    if not 0.0 <= DRAFTING_TEMPERATURE <= 2.0:
        issues.append(f"Invalid DRAFTING_TEMPERATURE: {DRAFTING_TEMPERATURE}")

    if FEED_REQUEST_TIMEOUT_SEC < 1:
        issues.append("FEED_REQUEST_TIMEOUT_SEC must be >= 1")

    if os.path.abspath(DB_PATH) == os.path.abspath(LOCAL_STORAGE_PATH):
        issues.append("DB_PATH and LOCAL_STORAGE_PATH must point to different files")

    return issues
