"""
Microphone capture and spectrum analysis for the waterfall.

SpectrumAnalyser reproduces a browser analyser node's byte output:
- Blackman window over the newest fft_size samples
- magnitude spectrum normalised by fft_size
- exponential smoothing across frames
- dB scaled linearly into 0..255 between min_db and max_db

MicrophoneCapture keeps the newest samples from a sounddevice input
stream in a ring buffer. sounddevice is imported when the stream opens,
so hosts without PortAudio can still run the server and offline tools.
"""

from __future__ import annotations

import threading
from typing import Any, Optional, Protocol

import numpy as np

from constants import (
    ANALYSER_FFT_SIZE,
    ANALYSER_MAX_DB,
    ANALYSER_MIN_DB,
    ANALYSER_SMOOTHING,
    BYTE_MAGNITUDE_MAX,
    CAPTURE_SAMPLE_RATE_HZ,
)


class CaptureUnavailable(RuntimeError):
    """The input device or its driver could not be opened."""


class SampleSource(Protocol):
    sample_rate_hz: int
    def open(self) -> None: ...
    def close(self) -> None: ...
    def latest(self, num_samples: int) -> np.ndarray: ...


class SpectrumAnalyser:
    def __init__(
        self,
        *,
        fft_size: int = ANALYSER_FFT_SIZE,
        smoothing: float = ANALYSER_SMOOTHING,
        min_db: float = ANALYSER_MIN_DB,
        max_db: float = ANALYSER_MAX_DB,
    ) -> None:
        if fft_size <= 0 or fft_size % 2:
            raise ValueError("fft_size must be a positive even number")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if max_db <= min_db:
            raise ValueError("max_db must be greater than min_db")

        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db

        self._window = np.blackman(fft_size)
        self._smoothed = np.zeros(self.bin_count, dtype=np.float64)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._smoothed[:] = 0.0

    def analyse(self, samples: np.ndarray) -> np.ndarray:
        """
        Byte magnitudes (uint8, length bin_count) for the newest samples.

        Shorter input is zero-padded at the front.
        """
        block = np.asarray(samples, dtype=np.float64).reshape(-1)[-self.fft_size:]
        if block.shape[0] < self.fft_size:
            block = np.concatenate([np.zeros(self.fft_size - block.shape[0]), block])

        spectrum = np.fft.rfft(block * self._window)[: self.bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude

        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)

        scaled = (db - self.min_db) * (BYTE_MAGNITUDE_MAX / (self.max_db - self.min_db))
        scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=float(BYTE_MAGNITUDE_MAX))
        return np.clip(np.floor(scaled), 0, BYTE_MAGNITUDE_MAX).astype(np.uint8)


class MicrophoneCapture:
    """
    Mono input stream into a ring buffer.

    The PortAudio callback thread writes; latest() copies under a lock.
    """

    def __init__(
        self,
        *,
        sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
        buffer_samples: int = ANALYSER_FFT_SIZE * 4,
        device: Optional[str] = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.device = device
        self._buffer = np.zeros(buffer_samples, dtype=np.float32)
        self._write_pos = 0
        self._lock = threading.Lock()
        self._stream: Any = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        if self._stream is not None:
            return

        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise CaptureUnavailable("sounddevice is required for microphone capture.") from exc

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise CaptureUnavailable(f"Unable to open microphone: {exc}") from exc

        self._stream = stream

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()

    def write(self, samples: np.ndarray) -> None:
        """Append samples to the ring (used by the stream callback)."""
        data = np.asarray(samples, dtype=np.float32).reshape(-1)
        size = self._buffer.shape[0]
        if data.shape[0] >= size:
            data = data[-size:]

        with self._lock:
            end = self._write_pos + data.shape[0]
            if end <= size:
                self._buffer[self._write_pos:end] = data
            else:
                split = size - self._write_pos
                self._buffer[self._write_pos:] = data[:split]
                self._buffer[: end - size] = data[split:]
            self._write_pos = end % size

    def latest(self, num_samples: int) -> np.ndarray:
        """The newest num_samples samples, oldest first."""
        size = self._buffer.shape[0]
        num_samples = min(num_samples, size)
        if num_samples <= 0:
            return np.zeros(0, dtype=np.float32)
        with self._lock:
            ordered = np.concatenate([self._buffer[self._write_pos:], self._buffer[: self._write_pos]])
        return ordered[-num_samples:].copy()

    def _callback(self, indata, _frames, _time, status) -> None:
        if status:
            return
        self.write(indata[:, 0])
