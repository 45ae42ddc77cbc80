"""
Owner-side waterfall producer.

Responsibilities:
- Open the microphone when the audio owner starts the waterfall
- Tick at display rate: analyse, draw locally, relay gated frames
- Stop itself when ownership is lost

Non-responsibilities:
- NO rendering of remote frames (the client feeds WaterfallImage directly)
- NO transport handling (send is injected and best-effort)
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable

import numpy as np

from constants import (
    WATERFALL_BINS,
    WATERFALL_SEND_INTERVAL_MS,
    WATERFALL_TICK_MS,
)
from observability.logger import log_event
from playback.tones import Sleep, sleep_ms
from protocol.messages import waterfall_frame
from spectral.capture import CaptureUnavailable, SampleSource, SpectrumAnalyser
from spectral.downsample import FrameRateGate, max_bin_for_frequency, max_pool_bins
from spectral.waterfall import WaterfallImage


SendMessage = Callable[[dict[str, Any]], Awaitable[bool]]
IsAudioOwner = Callable[[], bool]
ClockMs = Callable[[], float]


STATUS_READY = "Waterfall ready."
STATUS_RUNNING = "Waterfall running. Broadcasting to all clients."
STATUS_STOPPED = "Waterfall stopped."
STATUS_NOT_OWNER = "Only the audio output client can start the waterfall."
STATUS_CAPTURE_FAILED = "Unable to access microphone. Check permissions and input device."


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _monotonic_ms() -> float:
    return time.monotonic_ns() / 1_000_000


class WaterfallProducer:
    def __init__(
        self,
        *,
        capture: SampleSource,
        analyser: SpectrumAnalyser,
        send: SendMessage,
        is_audio_owner: IsAudioOwner,
        image: WaterfallImage | None = None,
        out_bins: int = WATERFALL_BINS,
        send_interval_ms: float = WATERFALL_SEND_INTERVAL_MS,
        tick_ms: float = WATERFALL_TICK_MS,
        max_hz: float | None = None,
        clock_ms: ClockMs = _monotonic_ms,
        sleep: Sleep = sleep_ms,
        session_id: int | None = None,
    ) -> None:
        self._capture = capture
        self._analyser = analyser
        self._send = send
        self._is_audio_owner = is_audio_owner
        self.image = image if image is not None else WaterfallImage()
        self._out_bins = out_bins
        self._gate = FrameRateGate(send_interval_ms)
        self._tick_ms = tick_ms
        self._clock_ms = clock_ms
        self._sleep = sleep
        self.session_id = session_id

        self._max_bin = (
            max_bin_for_frequency(max_hz, capture.sample_rate_hz, analyser.bin_count)
            if max_hz is not None
            else None
        )

        self._running = False
        self.status = STATUS_READY
        self.frames_sent = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """
        Open capture and begin producing.

        Returns False, with `status` explaining why, if this client is not
        the owner or the microphone is unavailable. Capture failure leaves
        queue, config and ownership untouched.
        """
        if not self._is_audio_owner():
            self.status = STATUS_NOT_OWNER
            self._log("WATERFALL_START_REJECTED", details={"reason": "not_audio_owner"})
            return False

        if self._running:
            return True

        try:
            self._capture.open()
        except CaptureUnavailable as e:
            self.status = STATUS_CAPTURE_FAILED
            self._log(
                "WATERFALL_CAPTURE_UNAVAILABLE",
                level="WARNING",
                details={"error": str(e)},
            )
            return False

        self.image.clear()
        self._analyser.reset()
        self._gate.reset()
        self._running = True
        self.status = STATUS_RUNNING
        self._log("WATERFALL_STARTED")
        return True

    def stop(self, *, reason: str = "requested") -> None:
        if not self._running:
            return
        self._running = False
        self._capture.close()
        self.image.clear()
        self.status = STATUS_STOPPED
        self._log("WATERFALL_STOPPED", details={"reason": reason, "frames_sent": self.frames_sent})

    async def step(self) -> bool:
        """
        One display tick: analyse, draw, maybe relay.

        Returns True if a frame was handed to send().
        """
        samples = self._capture.latest(self._analyser.fft_size)
        bins = self._analyser.analyse(samples)
        self.image.push_column(bins)

        if not self._gate.admit(self._clock_ms()):
            return False

        pooled: np.ndarray = max_pool_bins(bins, self._out_bins, self._max_bin)
        sent = await self._send(waterfall_frame(pooled.tolist()))
        if sent:
            self.frames_sent += 1
        return True

    async def run(self) -> None:
        """Tick until stopped; exits voluntarily when ownership is lost."""
        while self._running:
            if not self._is_audio_owner():
                self.stop(reason="ownership_lost")
                break
            await self.step()
            await self._sleep(self._tick_ms)

    def _log(self, event_type: str, *, level: str = "INFO", details: dict | None = None) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "level": level,
            "event_type": event_type,
            "session_id": self.session_id,
            "details": details or {},
        })
