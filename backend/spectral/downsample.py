"""
Spectral frame reduction and rate limiting for the waterfall relay.

- Max-pool a large analysis frame down to a fixed bin count
- Optionally keep only bins below a cutoff frequency first
- Gate outbound frames to a minimum interval
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def max_pool_bins(
    raw: Sequence[int] | np.ndarray,
    out_bins: int,
    max_bin: int | None = None,
) -> np.ndarray:
    """
    Reduce `raw` to `out_bins` values, each the maximum of its source range.

    Output bin i covers source bins [floor(i * n / out), floor((i + 1) * n / out)).
    A range narrower than one source bin still covers its start bin, so a
    source shorter than the output repeats values instead of leaving zeros.

    Returns uint8 of length out_bins; an empty source yields all zeros.
    """
    if out_bins <= 0:
        raise ValueError("out_bins must be > 0")

    src = np.asarray(raw, dtype=np.uint8)
    if max_bin is not None:
        src = src[:max(0, max_bin)]

    result = np.zeros(out_bins, dtype=np.uint8)
    n = src.shape[0]
    if n == 0:
        return result

    bin_size = n / out_bins
    for i in range(out_bins):
        start = min(int(math.floor(i * bin_size)), n - 1)
        end = max(int(math.floor((i + 1) * bin_size)), start + 1)
        result[i] = src[start:min(end, n)].max()

    return result


def max_bin_for_frequency(max_hz: float, sample_rate_hz: int, bin_count: int) -> int:
    """Number of leading analysis bins at or below `max_hz` (at least 1)."""
    if bin_count <= 0:
        raise ValueError("bin_count must be > 0")
    hz_per_bin = (sample_rate_hz / 2.0) / bin_count
    return max(1, min(bin_count, int(math.ceil(max_hz / hz_per_bin))))


class FrameRateGate:
    """
    Minimum-interval gate for outbound frames.

    State:
    - last_accepted_ms is None until the first frame is admitted
    - a later frame is admitted only if at least min_interval_ms has
      elapsed since the last admitted one; rejected frames do not move
      the reference point
    """

    def __init__(self, min_interval_ms: float) -> None:
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")
        self.min_interval_ms = min_interval_ms
        self.last_accepted_ms: float | None = None

    def admit(self, now_ms: float) -> bool:
        if self.last_accepted_ms is not None and now_ms - self.last_accepted_ms < self.min_interval_ms:
            return False
        self.last_accepted_ms = now_ms
        return True

    def reset(self) -> None:
        self.last_accepted_ms = None
