"""
Runtime configuration.

Values come from the environment (optionally seeded from a .env file).
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Values the frontend shipped as stand-ins for a real key
PLACEHOLDER_API_KEYS = {"", "demo-key", "your-api-key-here", "sk-ant-..."}


def has_real_api_key(api_key: Optional[str]) -> bool:
    """True if the key looks usable; missing and placeholder keys mean offline mode."""
    if api_key is None:
        return False
    return api_key.strip() not in PLACEHOLDER_API_KEYS


class Settings:
    """Service settings read once from the environment."""

    def __init__(self):
        # Vision model
        self.ANTHROPIC_API_KEY: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
        self.VISION_MODEL: str = os.getenv("VISION_MODEL", "claude-sonnet-4-20250514")
        self.CLASSIFY_MAX_TOKENS: int = int(os.getenv("CLASSIFY_MAX_TOKENS", "300"))
        self.EXTRACT_MAX_TOKENS: int = int(os.getenv("EXTRACT_MAX_TOKENS", "1000"))

        # Storage
        self.DATABASE_PATH: str = os.getenv("DATABASE_PATH", "dynastylab.db")

        # Server
        self.ALLOWED_ORIGINS: list[str] = [
            s for s in os.getenv("ALLOWED_ORIGINS", "*").split(",") if s
        ]
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def offline(self) -> bool:
        return not has_real_api_key(self.ANTHROPIC_API_KEY)


@lru_cache
def get_settings() -> Settings:
    return Settings()
