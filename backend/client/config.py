"""
Audio-owner client configuration.

Read once at startup from the environment (a .env file is loaded by the
CLI before this runs).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import CLIENT_RECONNECT_DELAY_S, DEFAULT_SERVER_URL, TONE_SAMPLE_RATE_HZ


@dataclass(frozen=True)
class ClientConfig:
    server_url: str = DEFAULT_SERVER_URL
    reconnect_delay_s: float = CLIENT_RECONNECT_DELAY_S
    tone_sample_rate_hz: int = TONE_SAMPLE_RATE_HZ

    @staticmethod
    def load_from_env() -> ClientConfig:
        """
        Raises:
            ValueError if a numeric variable cannot be parsed.
        """
        reconnect_delay_s = float(
            os.environ.get("PILEUP_RECONNECT_DELAY_S", str(CLIENT_RECONNECT_DELAY_S))
        )
        if reconnect_delay_s < 0:
            raise ValueError("PILEUP_RECONNECT_DELAY_S must be >= 0")

        tone_sample_rate_hz = int(
            os.environ.get("PILEUP_TONE_SAMPLE_RATE", str(TONE_SAMPLE_RATE_HZ))
        )
        if tone_sample_rate_hz <= 0:
            raise ValueError("PILEUP_TONE_SAMPLE_RATE must be > 0")

        return ClientConfig(
            server_url=os.environ.get("PILEUP_SERVER_URL", DEFAULT_SERVER_URL),
            reconnect_delay_s=reconnect_delay_s,
            tone_sample_rate_hz=tone_sample_rate_hz,
        )
