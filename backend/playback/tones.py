"""
Tone synthesis and output sinks.

The scheduler only knows the ToneSink protocol:
    await sink.tone(frequency_hz, duration_ms)
    await sink.silence(duration_ms)

Both return once the element's structural duration has elapsed (live
output) or has been written (offline buffer). Every tone carries a short
linear attack/release envelope to avoid clicks; the envelope sits inside
the structural duration, so element timing is unchanged by it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

import numpy as np
import soundfile as sf

from constants import TONE_AMPLITUDE, TONE_RAMP_MS, TONE_SAMPLE_RATE_HZ


Sleep = Callable[[float], Awaitable[None]]


async def sleep_ms(duration_ms: float) -> None:
    await asyncio.sleep(duration_ms / 1000.0)


class SinkUnavailable(RuntimeError):
    """The audio output device could not be opened."""


def _sample_count(duration_ms: float, sample_rate_hz: int) -> int:
    return max(0, int(round(duration_ms * sample_rate_hz / 1000.0)))


def synthesize_tone(
    frequency_hz: float,
    duration_ms: float,
    *,
    sample_rate_hz: int = TONE_SAMPLE_RATE_HZ,
    ramp_ms: float = TONE_RAMP_MS,
    amplitude: float = TONE_AMPLITUDE,
    num_samples: int | None = None,
) -> np.ndarray:
    """
    Sine tone with linear attack and release.

    The ramp is shortened to half the tone for very short elements so
    attack and release never overlap.
    """
    n = _sample_count(duration_ms, sample_rate_hz) if num_samples is None else num_samples
    if n <= 0:
        return np.zeros(0, dtype=np.float32)

    t = np.arange(n, dtype=np.float64) / sample_rate_hz
    wave = np.sin(2.0 * np.pi * frequency_hz * t)

    ramp = min(_sample_count(ramp_ms, sample_rate_hz), n // 2)
    envelope = np.ones(n, dtype=np.float64)
    if ramp > 0:
        rise = np.linspace(0.0, 1.0, ramp, endpoint=False)
        envelope[:ramp] = rise
        envelope[n - ramp:] = rise[::-1]

    return (amplitude * envelope * wave).astype(np.float32)


@runtime_checkable
class ToneSink(Protocol):
    async def tone(self, frequency_hz: float, duration_ms: float) -> None: ...
    async def silence(self, duration_ms: float) -> None: ...


class SoundDeviceToneSink:
    """
    Live output through the default sounddevice output stream.

    Playback is started non-blocking and the coroutine waits out the
    structural duration, so a tone in flight always completes.
    """

    def __init__(
        self,
        *,
        sample_rate_hz: int = TONE_SAMPLE_RATE_HZ,
        sleep: Sleep = sleep_ms,
    ) -> None:
        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise SinkUnavailable("sounddevice is required for live tone output.") from exc

        self._sd: Any = sd
        self._sample_rate_hz = sample_rate_hz
        self._sleep = sleep

    async def tone(self, frequency_hz: float, duration_ms: float) -> None:
        samples = synthesize_tone(frequency_hz, duration_ms, sample_rate_hz=self._sample_rate_hz)
        self._sd.play(samples, self._sample_rate_hz)
        await self._sleep(duration_ms)

    async def silence(self, duration_ms: float) -> None:
        await self._sleep(duration_ms)


class BufferToneSink:
    """
    Offline renderer: appends every element to one sample buffer.

    Sample boundaries are computed from the running total of elapsed
    time, so rounding never accumulates across elements.
    """

    def __init__(self, *, sample_rate_hz: int = TONE_SAMPLE_RATE_HZ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self._chunks: list[np.ndarray] = []
        self._elapsed_ms = 0.0
        self._written = 0

    def _advance(self, duration_ms: float) -> int:
        self._elapsed_ms += duration_ms
        end = _sample_count(self._elapsed_ms, self.sample_rate_hz)
        n = end - self._written
        self._written = end
        return n

    async def tone(self, frequency_hz: float, duration_ms: float) -> None:
        n = self._advance(duration_ms)
        self._chunks.append(
            synthesize_tone(
                frequency_hz,
                duration_ms,
                sample_rate_hz=self.sample_rate_hz,
                num_samples=n,
            )
        )

    async def silence(self, duration_ms: float) -> None:
        n = self._advance(duration_ms)
        self._chunks.append(np.zeros(n, dtype=np.float32))

    @property
    def elapsed_ms(self) -> float:
        return self._elapsed_ms

    def samples(self) -> np.ndarray:
        if not self._chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self._chunks)

    def write_wav(self, path: str) -> None:
        sf.write(path, self.samples(), self.sample_rate_hz, subtype="PCM_16")
