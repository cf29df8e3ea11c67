"""
Configuration Module

All settings come from the environment and are read once at import.
"""

import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# LLM collaborator configuration
# - TERRAFORGE_LLM_BACKEND: "anthropic" (ANTHROPIC_API_KEY) or "vertex"
# - ANTHROPIC_VERTEX_PROJECT_ID / CLOUD_ML_REGION: used by the vertex backend
LLM_CONFIG = {
    "enabled": _env_bool("TERRAFORGE_AI_ENABLED"),
    "backend": os.getenv("TERRAFORGE_LLM_BACKEND", "anthropic"),
    "api_key": os.getenv("ANTHROPIC_API_KEY"),
    "model": os.getenv("TERRAFORGE_MODEL", "claude-sonnet-4-5"),
    "max_tokens": int(os.getenv("TERRAFORGE_MAX_TOKENS", "4000")),
    "vertex_project_id": os.getenv("ANTHROPIC_VERTEX_PROJECT_ID"),
    "vertex_region": os.getenv("CLOUD_ML_REGION", "us-east5"),
}

# Provisioning runner configuration
RUNNER_CONFIG = {
    "terraform_bin": os.getenv("TERRAFORGE_TERRAFORM_BIN", "terraform"),
    "stage_timeout": int(os.getenv("TERRAFORGE_STAGE_TIMEOUT", "900")),
    "spawn_retries": max(0, int(os.getenv("TERRAFORGE_SPAWN_RETRIES", "2"))),
    "workdir_root": os.getenv("TERRAFORGE_WORKDIR_ROOT") or None,
}

# HTTP API configuration
API_CONFIG = {
    "cors_origins": [o.strip() for o in os.getenv("TERRAFORGE_CORS_ORIGINS", "*").split(",") if o.strip()],
    "log_level": os.getenv("TERRAFORGE_LOG_LEVEL", "INFO").upper(),
    "host": os.getenv("TERRAFORGE_HOST", "127.0.0.1"),
    "port": int(os.getenv("TERRAFORGE_PORT", "8000")),
}
