"""
Scrolling waterfall image.

Each pushed frame becomes one column on the right edge; older columns
shift left by one pixel. Row 0 is the top (highest frequency). The image
is only cleared explicitly, never by receiving a frame.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from constants import (
    BYTE_MAGNITUDE_MAX,
    WATERFALL_BACKGROUND,
    WATERFALL_COLOR_BASE,
    WATERFALL_COLOR_SPAN,
    WATERFALL_DEFAULT_HEIGHT,
    WATERFALL_DEFAULT_WIDTH,
    WATERFALL_GAMMA,
)


_BASE = np.array(WATERFALL_COLOR_BASE, dtype=np.float64)
_SPAN = np.array(WATERFALL_COLOR_SPAN, dtype=np.float64)


def magnitude_to_color(magnitude: float | np.ndarray) -> np.ndarray:
    """
    Map normalised magnitude (0..1) to RGB via the gamma palette.

    Accepts a scalar (returns shape (3,)) or an array (returns shape (..., 3)).
    """
    mag = np.clip(np.asarray(magnitude, dtype=np.float64), 0.0, 1.0)
    brightness = np.power(mag, WATERFALL_GAMMA)[..., np.newaxis]
    rgb = _BASE + np.floor(_SPAN * brightness)
    return np.clip(rgb, 0, 255).astype(np.uint8)


class WaterfallImage:
    """H x W x 3 uint8 buffer."""

    def __init__(
        self,
        *,
        width: int = WATERFALL_DEFAULT_WIDTH,
        height: int = WATERFALL_DEFAULT_HEIGHT,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self.width = width
        self.height = height
        self.pixels = np.empty((height, width, 3), dtype=np.uint8)
        self.columns_drawn = 0
        self.clear()

    def clear(self) -> None:
        self.pixels[:, :] = WATERFALL_BACKGROUND
        self.columns_drawn = 0

    def row_bin_indices(self, bin_count: int) -> np.ndarray:
        """Source bin for every row: top rows map to the highest bins."""
        rel = 1.0 - np.arange(self.height, dtype=np.float64) / self.height
        return np.clip(np.floor(rel * bin_count).astype(np.int64), 0, bin_count - 1)

    def push_column(self, bins: Sequence[int] | np.ndarray) -> bool:
        """
        Scroll left and draw `bins` as the new rightmost column.

        Returns False (image untouched) for an empty frame.
        """
        data = np.asarray(bins, dtype=np.float64).reshape(-1)
        if data.shape[0] == 0:
            return False

        column = data[self.row_bin_indices(data.shape[0])] / BYTE_MAGNITUDE_MAX

        self.pixels[:, :-1] = self.pixels[:, 1:]
        self.pixels[:, -1] = magnitude_to_color(column)
        self.columns_drawn += 1
        return True
