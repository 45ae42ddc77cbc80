# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np
import pytest

from spectral.downsample import FrameRateGate, max_bin_for_frequency, max_pool_bins


# ---------------------------------------------------------------------
# Max pooling
# ---------------------------------------------------------------------

def test_max_pool_keeps_peaks_not_averages():
    raw = np.zeros(1024, dtype=np.uint8)
    raw[517] = 200

    pooled = max_pool_bins(raw, 128)

    assert pooled.shape == (128,)
    assert pooled.dtype == np.uint8
    # 1024 / 128 = 8 source bins per output bin
    assert pooled[517 // 8] == 200
    assert int(pooled.sum()) == 200


def test_max_pool_ranges_cover_every_source_bin():
    raw = np.arange(256, dtype=np.uint8)

    pooled = max_pool_bins(raw, 16)

    assert pooled.tolist() == [15 + 16 * i for i in range(16)]


def test_max_pool_uneven_split():
    pooled = max_pool_bins([1, 9, 3, 4, 8, 2, 7], 3)

    # bin size 7/3: ranges [0,2) [2,4) [4,7)
    assert pooled.tolist() == [9, 4, 8]


def test_max_pool_short_source_repeats_instead_of_zeroing():
    pooled = max_pool_bins([10, 20], 4)

    assert pooled.tolist() == [10, 10, 20, 20]


def test_max_pool_respects_max_bin():
    raw = np.zeros(1024, dtype=np.uint8)
    raw[900] = 255

    assert int(max_pool_bins(raw, 128, max_bin=512).max()) == 0
    assert int(max_pool_bins(raw, 128).max()) == 255


def test_max_pool_empty_source_is_all_zero():
    assert max_pool_bins([], 8).tolist() == [0] * 8


def test_max_pool_rejects_non_positive_output():
    with pytest.raises(ValueError):
        max_pool_bins([1, 2], 0)


def test_max_bin_for_frequency():
    # 48 kHz / 2 over 1024 bins = 23.4375 Hz per bin
    assert max_bin_for_frequency(3000, 48_000, 1024) == 128
    assert max_bin_for_frequency(100_000, 48_000, 1024) == 1024
    assert max_bin_for_frequency(0, 48_000, 1024) == 1


# ---------------------------------------------------------------------
# Frame rate gate
# ---------------------------------------------------------------------

def test_gate_admits_first_then_enforces_interval():
    gate = FrameRateGate(100)

    assert gate.admit(1_000) is True
    assert gate.admit(1_016) is False
    assert gate.admit(1_099) is False
    assert gate.admit(1_100) is True
    assert gate.admit(1_150) is False


def test_gate_rejected_frames_do_not_move_reference():
    gate = FrameRateGate(100)
    gate.admit(0)

    for t in range(10, 100, 10):
        assert gate.admit(t) is False

    assert gate.admit(100) is True


def test_gate_reset_admits_immediately():
    gate = FrameRateGate(100)
    gate.admit(0)

    gate.reset()

    assert gate.admit(1) is True


def test_sixty_hz_ticks_yield_about_ten_frames_per_second():
    gate = FrameRateGate(100)

    admitted = sum(gate.admit(i * 1000 / 60) for i in range(600))

    assert 9 * 10 <= admitted <= 10 * 10
