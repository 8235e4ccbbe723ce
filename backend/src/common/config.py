import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


# =============================================================================
# 1. Environment Loading (walks up to the nearest .env)
# =============================================================================
def get_project_root() -> Path:
    """
    Locate the project root relative to this file.

    Walks upward looking for a `.env` file or a `.git` directory.
    """
    current_path = Path(__file__).resolve()
    for parent in current_path.parents:
        if (parent / ".env").exists() or (parent / ".git").exists():
            return parent
    return current_path.parents[3]  # Fallback


PROJECT_ROOT = get_project_root()
ENV_PATH = PROJECT_ROOT / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    load_dotenv()  # process environment only


# =============================================================================
# 2. Helper Functions
# =============================================================================
def get_env(key: str, default: Any = None, cast_to: type = str) -> Any:
    """Read an environment variable and cast it to the requested type."""
    value = os.getenv(key)
    if value is None:
        return default

    if cast_to is bool:
        return value.lower() in ("true", "1", "yes", "on")
    if cast_to is list:
        return [x.strip() for x in value.split(",") if x.strip()]
    try:
        return cast_to(value)
    except (ValueError, TypeError):
        return default


# =============================================================================
# 3. Database Configuration
# =============================================================================
DB_CONFIG = {
    # DATABASE_URL wins over the discrete PG_* settings when both are present
    "url": get_env("DATABASE_URL"),
    "host": get_env("PG_HOST", "localhost"),
    "port": get_env("PG_PORT", 5432, int),
    "user": get_env("PG_USER", "postgres"),
    "password": get_env("PG_PASSWORD", ""),
    "database": get_env("PG_DATABASE", "dreamcut"),
    "echo": get_env("DB_ECHO", False, bool),
    "pool_size": get_env("DB_POOL_SIZE", 5, int),
    "max_overflow": get_env("DB_MAX_OVERFLOW", 5, int),
    "auto_create_schema": get_env("AUTO_CREATE_SCHEMA", False, bool),
}

# =============================================================================
# 4. AI Vendor Configuration
# =============================================================================
AI_CONFIG = {
    # API Keys
    "openai_api_key": get_env("OPENAI_API_KEY"),
    "anthropic_api_key": get_env("ANTHROPIC_API_KEY"),
    # Model routing (litellm identifiers)
    "primary_model": get_env("PRIMARY_LLM_MODEL", "anthropic/claude-3-5-haiku-20241022"),
    "fallback_model": get_env("FALLBACK_LLM_MODEL", "gpt-4o-mini"),
    "repair_model": get_env("REPAIR_LLM_MODEL", "gpt-5"),
    "script_models": get_env(
        "SCRIPT_LLM_MODELS",
        ["gpt-5", "gpt-4o", "anthropic/claude-3-5-haiku-20241022", "gpt-4o-mini"],
        list,
    ),
}

LLM_CONFIG = {
    "max_tokens": get_env("LLM_MAX_TOKENS", 2048, int),
    "temperature": get_env("LLM_TEMPERATURE", 0.1, float),
    "top_p": get_env("LLM_TOP_P", 0.9, float),
    "timeout_sec": get_env("LLM_TIMEOUT_SEC", 30.0, float),
    "max_retries": get_env("LLM_MAX_RETRIES", 2, int),
    "stop_sequences": ["```", "---", "===", "***"],
    "retry_base_delay_sec": get_env("LLM_RETRY_BASE_DELAY_SEC", 1.0, float),
    "retry_max_delay_sec": get_env("LLM_RETRY_MAX_DELAY_SEC", 5.0, float),
    "max_concurrency": get_env("LLM_MAX_CONCURRENCY", 5, int),
    "safe_mode_threshold": get_env("LLM_SAFE_MODE_THRESHOLD", 3, int),
}

JSON_REPAIR_CONFIG = {
    "max_repair_length": get_env("JSON_REPAIR_MAX_LENGTH", 4000, int),
    "repair_max_tokens": get_env("JSON_REPAIR_MAX_TOKENS", 2000, int),
    "repair_temperature": 0.0,
}

# USD per 1M tokens
LLM_PRICING = {
    "anthropic/claude-3-5-haiku-20241022": {"input": 0.25, "output": 1.25},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-5": {"input": 1.25, "output": 10.00},
}

# =============================================================================
# 5. Service Configuration
# =============================================================================
REFINER_CONFIG = {
    "max_tokens": get_env("REFINER_MAX_TOKENS", 2048, int),
    "temperature": get_env("REFINER_TEMPERATURE", 0.1, float),
    "max_retries": get_env("REFINER_MAX_RETRIES", 2, int),
    "timeout_sec": get_env("REFINER_TIMEOUT_SEC", 30.0, float),
    "persist_results": get_env("REFINER_PERSIST_RESULTS", True, bool),
}

SCRIPT_CONFIG = {
    "max_tokens": get_env("SCRIPT_MAX_TOKENS", 4000, int),
    "temperature": get_env("SCRIPT_TEMPERATURE", 0.1, float),
    "default_profile": get_env("SCRIPT_DEFAULT_PROFILE", "educational_explainer"),
    "words_per_second": 5,
    "persist_results": get_env("SCRIPT_PERSIST_RESULTS", True, bool),
}

API_CONFIG = {
    "cors_origins": get_env("CORS_ORIGINS", ["*"], list),
    "expose_error_details": get_env("EXPOSE_ERROR_DETAILS", False, bool),
}
