# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from pathlib import Path

import numpy as np
import soundfile as sf

from playback.tones import BufferToneSink, ToneSink, synthesize_tone


SR = 48_000


def test_tone_length_matches_duration():
    samples = synthesize_tone(600, 60, sample_rate_hz=SR)

    assert samples.dtype == np.float32
    assert samples.shape == (int(0.060 * SR),)


def test_tone_ramps_from_and_to_silence():
    samples = synthesize_tone(600, 100, sample_rate_hz=SR, ramp_ms=10)
    ramp = int(0.010 * SR)

    assert samples[0] == 0.0
    assert abs(samples[-1]) < 0.01
    # Ramp region peaks stay below the sustain peak
    assert np.max(np.abs(samples[: ramp // 4])) < 0.5 * np.max(np.abs(samples[ramp:-ramp]))


def test_peak_amplitude_is_bounded():
    samples = synthesize_tone(1000, 200, sample_rate_hz=SR, amplitude=0.5)

    assert np.max(np.abs(samples)) <= 0.5 + 1e-6
    assert np.max(np.abs(samples)) > 0.45


def test_very_short_tone_ramp_never_overlaps():
    samples = synthesize_tone(600, 5, sample_rate_hz=SR, ramp_ms=10)

    assert samples.shape == (240,)
    assert np.all(np.isfinite(samples))


def test_zero_duration_is_empty():
    assert synthesize_tone(600, 0).shape == (0,)


def test_tone_frequency_is_what_was_asked():
    samples = synthesize_tone(750, 1000, sample_rate_hz=SR)

    spectrum = np.abs(np.fft.rfft(samples))
    peak_hz = np.argmax(spectrum) * SR / samples.shape[0]
    assert abs(peak_hz - 750) <= 1


# ---------------------------------------------------------------------
# Buffer sink
# ---------------------------------------------------------------------

def test_buffer_sink_accumulates_exact_total_duration():
    sink = BufferToneSink(sample_rate_hz=SR)
    assert isinstance(sink, ToneSink)

    async def render() -> None:
        # 1200 / 13 wpm is not a whole number of samples
        unit = 1200 / 13
        for _ in range(100):
            await sink.tone(600, unit)
            await sink.silence(unit)

    asyncio.run(render())

    assert sink.elapsed_ms == sum([1200 / 13] * 200)
    assert sink.samples().shape[0] == round(sink.elapsed_ms * SR / 1000)


def test_buffer_sink_silence_is_zero():
    sink = BufferToneSink(sample_rate_hz=SR)

    asyncio.run(sink.silence(10))

    assert not np.any(sink.samples())


def test_write_wav_round_trips_through_soundfile(tmp_path: Path):
    sink = BufferToneSink(sample_rate_hz=SR)
    asyncio.run(sink.tone(600, 60))
    path = tmp_path / "e.wav"

    sink.write_wav(str(path))

    data, rate = sf.read(str(path))
    assert rate == SR
    assert data.shape[0] == int(0.060 * SR)
