"""
Runtime configuration.

Environment-based settings with safe defaults.
Strategy:
- .env (runtime): OPENAI_API_KEY=..., RECORD_STORE=supabase, etc.
- tests: nothing set, in-memory store and no network
- Default: memory record store (safe fallback if env vars not set)

Usage:
    from nutricoach.config import Settings, create_record_store

    settings = Settings.from_env()
    store = create_record_store(settings)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from nutricoach.domain.ports import IMealRecordStore


@dataclass(frozen=True)
class Settings:
    """Settings for the dialogue engine and its collaborators."""

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout: int = 30
    openai_max_retries: int = 3
    openai_rpm_limit: int = 60

    record_store: str = "memory"
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    log_level: str = "INFO"
    followup_delay_s: float = 1.5
    pending_action_max_age_min: int = 30
    max_message_history: int = 10

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Loads a .env file first (existing environment wins).

        Args:
            env_file: Optional explicit path to a .env file

        Returns:
            Settings instance
        """
        load_dotenv(env_file)

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            openai_timeout=int(os.getenv("OPENAI_TIMEOUT", "30")),
            openai_max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "3")),
            openai_rpm_limit=int(os.getenv("OPENAI_RPM_LIMIT", "60")),
            record_store=os.getenv("RECORD_STORE", "memory").lower(),
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            followup_delay_s=float(os.getenv("FOLLOWUP_DELAY_S", "1.5")),
            pending_action_max_age_min=int(os.getenv("PENDING_ACTION_MAX_AGE_MIN", "30")),
            max_message_history=int(os.getenv("MAX_MESSAGE_HISTORY", "10")),
        )


def create_record_store(settings: Settings) -> IMealRecordStore:
    """Create record store based on RECORD_STORE.

    Values:
        - "supabase": Supabase REST tables (requires SUPABASE_URL and SUPABASE_ANON_KEY)
        - "memory": In-memory store (default)

    Returns:
        IMealRecordStore: Record store instance

    Raises:
        ValueError: If supabase is selected without credentials
    """
    if settings.record_store == "supabase":
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise ValueError(
                "RECORD_STORE=supabase but SUPABASE_URL/SUPABASE_ANON_KEY not set. "
                "Set them in .env or use RECORD_STORE=memory"
            )
        from nutricoach.infrastructure.persistence.supabase_record_store import (
            SupabaseMealRecordStore,
        )

        return SupabaseMealRecordStore(
            base_url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
        )

    from nutricoach.infrastructure.persistence.in_memory_record_store import (
        InMemoryMealRecordStore,
    )

    return InMemoryMealRecordStore()
