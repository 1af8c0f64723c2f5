"""
Resume Analyzer Configuration
==============================
Centralized configuration with environment variable overrides.
Endpoint URLs, credentials and tuning knobs all live here.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_MODEL = "mistralai/mixtral-8x7b-instruct"

SYSTEM_PROMPT = (
    "You are a resume tailoring assistant that compares resumes to job descriptions "
    "and provides skill matches, gaps, and improvement suggestions."
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API service."""

    port: int = 8000
    allowed_origins: Tuple[str, ...] = ("*",)

    # LLM completion endpoint
    openrouter_api_key: Optional[str] = None
    openrouter_url: str = OPENROUTER_URL
    openrouter_model: str = OPENROUTER_MODEL
    system_prompt: str = SYSTEM_PROMPT
    llm_timeout_seconds: float = 60.0

    # Managed store
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Analysis
    fallback_match_percentage: int = 75   # Used when the model reply is not JSON
    recent_analyses_limit: int = 3

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    def status(self) -> Dict[str, str]:
        """Presence report for startup logs. Never exposes secret values."""
        return {
            "OPENROUTER_API_KEY": "SET" if self.openrouter_api_key else "NOT SET",
            "SUPABASE_URL": "SET" if self.supabase_url else "NOT SET",
            "SUPABASE_SERVICE_KEY": "SET" if self.supabase_service_key else "NOT SET",
        }


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins: List[str] = [o.strip() for o in raw.split(",") if o.strip()]
    return tuple(origins) or ("*",)


def load_settings() -> Settings:
    """Load settings with environment variable overrides."""
    overrides = {}
    env_map = {
        "PORT": ("port", int),
        "OPENROUTER_MODEL": ("openrouter_model", str),
        "OPENROUTER_URL": ("openrouter_url", str),
        "LLM_TIMEOUT_SECONDS": ("llm_timeout_seconds", float),
        "FALLBACK_MATCH_PERCENTAGE": ("fallback_match_percentage", int),
        "RECENT_ANALYSES_LIMIT": ("recent_analyses_limit", int),
        "MAX_UPLOAD_BYTES": ("max_upload_bytes", int),
    }
    for env_key, (field_name, cast_fn) in env_map.items():
        val = os.getenv(env_key)
        if val is not None:
            try:
                overrides[field_name] = cast_fn(val)
            except (ValueError, TypeError):
                pass

    fallback = overrides.get("fallback_match_percentage")
    if fallback is not None and not 0 <= fallback <= 100:
        del overrides["fallback_match_percentage"]

    origins = os.getenv("ALLOWED_ORIGINS")
    if origins:
        overrides["allowed_origins"] = _split_origins(origins)

    return Settings(
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        supabase_url=os.getenv("SUPABASE_URL") or None,
        # Try both possible env var names for backward compatibility
        supabase_service_key=(
            os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None
        ),
        **overrides,
    )
