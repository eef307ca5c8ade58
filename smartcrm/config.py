"""
Centralized Configuration - Single source of truth for all settings.

All environment variables are read here, validated, and exposed as module-level
constants. Other modules import from here instead of reading os.environ directly.

Usage:
    from smartcrm.config import LLM_API_BASE, LLM_MODEL, LOG_LEVEL
"""

import os
import sys

# ─── PATHS ───────────────────────────────────────────────────

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ─── LLM ─────────────────────────────────────────────────────

LLM_API_BASE = os.environ.get("LLM_API_BASE", "https://api.openai.com/v1")
LLM_API_KEY = os.environ.get("LLM_API_KEY", os.environ.get("OPENAI_API_KEY", ""))
LLM_MODEL = os.environ.get("LLM_MODEL", "gpt-4o")
LLM_TIMEOUT = int(os.environ.get("LLM_TIMEOUT_SECONDS", "60"))

# ─── API ─────────────────────────────────────────────────────

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
CORS_ORIGINS = os.environ.get(
    "CRM_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",")

# ─── DUPLICATES & SCORING ────────────────────────────────────

DUPLICATE_THRESHOLD = float(os.environ.get("DUPLICATE_THRESHOLD", "0.8"))
BULK_COST_PER_CONTACT = float(os.environ.get("BULK_COST_PER_CONTACT", "0.005"))
BULK_MS_PER_CONTACT = int(os.environ.get("BULK_MS_PER_CONTACT", "200"))

# ─── LOGGING ─────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "text" or "json"
LOG_FILE = os.environ.get("LOG_FILE", "")  # empty = stdout only

# ─── VALIDATION ──────────────────────────────────────────────

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_LOG_FORMATS = {"text", "json"}

_errors = []

if LOG_LEVEL not in _VALID_LOG_LEVELS:
    _errors.append(f"LOG_LEVEL must be one of {_VALID_LOG_LEVELS}, got '{LOG_LEVEL}'")

if LOG_FORMAT not in _VALID_LOG_FORMATS:
    _errors.append(f"LOG_FORMAT must be one of {_VALID_LOG_FORMATS}, got '{LOG_FORMAT}'")

if LLM_TIMEOUT < 1:
    _errors.append(f"LLM_TIMEOUT_SECONDS must be positive, got {LLM_TIMEOUT}")

if not 0.0 <= DUPLICATE_THRESHOLD <= 1.0:
    _errors.append(f"DUPLICATE_THRESHOLD must be between 0 and 1, got {DUPLICATE_THRESHOLD}")

if BULK_COST_PER_CONTACT < 0:
    _errors.append(f"BULK_COST_PER_CONTACT must not be negative, got {BULK_COST_PER_CONTACT}")

if BULK_MS_PER_CONTACT < 0:
    _errors.append(f"BULK_MS_PER_CONTACT must not be negative, got {BULK_MS_PER_CONTACT}")

if _errors:
    for e in _errors:
        print(f"[config] ERROR: {e}", file=sys.stderr)
    # Don't crash during import - handlers may not need all config


def validate(strict: bool = False) -> list:
    """Validate all configuration settings.

    Args:
        strict: If True, raise ValueError on any errors.

    Returns:
        List of error messages (empty if all valid).
    """
    if strict and _errors:
        raise ValueError(f"Configuration errors: {'; '.join(_errors)}")
    return list(_errors)


def print_config():
    """Print current configuration (safe - no secrets)."""
    print("=" * 50)
    print("SmartCRM Configuration")
    print("=" * 50)
    print(f"  LLM_API_BASE:          {LLM_API_BASE}")
    print(f"  LLM_API_KEY:           {'set' if LLM_API_KEY else 'not set'}")
    print(f"  LLM_MODEL:             {LLM_MODEL}")
    print(f"  LLM_TIMEOUT:           {LLM_TIMEOUT}s")
    print(f"  API_HOST:              {API_HOST}")
    print(f"  API_PORT:              {API_PORT}")
    print(f"  CORS_ORIGINS:          {', '.join(CORS_ORIGINS)}")
    print(f"  DUPLICATE_THRESHOLD:   {DUPLICATE_THRESHOLD}")
    print(f"  BULK_COST_PER_CONTACT: {BULK_COST_PER_CONTACT}")
    print(f"  BULK_MS_PER_CONTACT:   {BULK_MS_PER_CONTACT}")
    print(f"  LOG_LEVEL:             {LOG_LEVEL}")
    print(f"  LOG_FORMAT:            {LOG_FORMAT}")
    print(f"  PROJECT_ROOT:          {PROJECT_ROOT}")
    print("=" * 50)
