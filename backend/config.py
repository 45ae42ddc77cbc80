"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No pileup logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    DAH_FREQUENCY_DEFAULT_HZ,
    DELAY_BETWEEN_ITEMS_DEFAULT_MS,
    DIT_FREQUENCY_DEFAULT_HZ,
    WPM_DEFAULT,
)
from store.state_dataclass import SessionConfig
from store.validation import validate_config_value


def _env_number(name: str, wire_field: str, default: float) -> float:
    """
    Read a numeric session default.

    Unparseable or out-of-bound values fall back to the built-in default,
    using the same bounds the live config updates are checked against.
    """
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value.is_integer():
        value = int(value)
    checked = validate_config_value(wire_field, value)
    return default if checked is None else checked


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and passed to the app factory.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # HTTP / WebSocket server
    # ------------------------------------------------------------------

    host: str
    port: int
    cors_origins: tuple[str, ...]

    # ------------------------------------------------------------------
    # Initial shared session config
    # ------------------------------------------------------------------

    default_wpm: float
    default_delay_ms: float
    default_dit_hz: float
    default_dah_hz: float

    def initial_session_config(self) -> SessionConfig:
        return SessionConfig(
            wpm=self.default_wpm,
            delay_between_items_ms=self.default_delay_ms,
            dit_frequency_hz=self.default_dit_hz,
            dah_frequency_hz=self.default_dah_hz,
        )

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if PORT is not an integer.
        """
        origins = os.environ.get("CORS_ORIGINS", "*")
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8000")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),

            default_wpm=_env_number("DEFAULT_WPM", "wpm", WPM_DEFAULT),
            default_delay_ms=_env_number(
                "DEFAULT_DELAY_MS", "delayBetweenItems", DELAY_BETWEEN_ITEMS_DEFAULT_MS
            ),
            default_dit_hz=_env_number("DEFAULT_DIT_HZ", "ditFrequency", DIT_FREQUENCY_DEFAULT_HZ),
            default_dah_hz=_env_number("DEFAULT_DAH_HZ", "dahFrequency", DAH_FREQUENCY_DEFAULT_HZ),
        )
