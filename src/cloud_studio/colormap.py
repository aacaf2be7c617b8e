"""
Colormaps for scalar fields on point clouds.

Point clouds without a native color channel are colored from their elevation
(Z) values. Values are normalized to t in [0, 1] using the extrema of the
input itself, then mapped through one of three palettes:

- **default**: piecewise linear blue -> green -> red
- **rainbow**: HSV hue sweep from 270 degrees (blue/violet) down to 0 (red)
- **elevation**: five-band terrain ramp blue -> cyan -> green -> yellow ->
  red -> white

All functions are vectorized with NumPy and return float32 RGB in [0, 1].
The formulas are evaluated in a fixed order so results are reproducible
bit-for-bit across runs.
"""

from enum import Enum

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = [
    "Palette",
    "DEFAULT_GRAY",
    "colormap",
    "normalize",
    "hsv_to_rgb",
    "constant_color",
]

DEFAULT_GRAY = (0.7, 0.7, 0.7)


class Palette(str, Enum):
    """Selectable colormap palettes."""

    DEFAULT = "default"
    RAINBOW = "rainbow"
    ELEVATION = "elevation"

    @classmethod
    def parse(cls, value: "Palette | str") -> "Palette":
        try:
            return cls(value)
        except ValueError:
            names = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown palette {value!r}. Choose one of: {names}") from None


def normalize(values: ArrayLike) -> NDArray[np.float64]:
    """
    Scale values to [0, 1] using their own min and max.

    Flat input (max == min) maps every value to 0 instead of dividing by zero.
    """
    v = np.asarray(values, dtype=np.float64).ravel()
    if v.size == 0:
        return v
    if not np.all(np.isfinite(v)):
        raise ValueError("Colormap values must be finite")

    v_min = v.min()
    span = v.max() - v_min
    if span == 0:
        return np.zeros_like(v)
    return (v - v_min) / span


def hsv_to_rgb(h, s, v):
    """
    Convert HSV to RGB with the standard six-sector algorithm.

    All inputs are in [0, 1]. Accepts scalars (returns an (r, g, b) tuple of
    floats) or arrays (returns an (..., 3) float64 array).
    """
    scalar = np.ndim(h) == 0 and np.ndim(s) == 0 and np.ndim(v) == 0
    h, s, v = np.broadcast_arrays(
        np.asarray(h, dtype=np.float64),
        np.asarray(s, dtype=np.float64),
        np.asarray(v, dtype=np.float64),
    )

    i = np.floor(h * 6)
    f = h * 6 - i
    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)
    sector = i.astype(np.int64) % 6

    r = np.choose(sector, [v, q, p, p, t, v])
    g = np.choose(sector, [t, v, v, q, p, p])
    b = np.choose(sector, [p, p, t, v, v, q])

    if scalar:
        return float(r), float(g), float(b)
    return np.stack([r, g, b], axis=-1)


def _default(t: NDArray[np.float64]) -> NDArray[np.float64]:
    low = t < 0.5
    r = np.where(low, 0.0, (t - 0.5) * 2)
    g = np.where(low, t * 2, 1 - (t - 0.5) * 2)
    b = np.where(low, 1 - t * 2, 0.0)
    return np.column_stack([r, g, b])


def _rainbow(t: NDArray[np.float64]) -> NDArray[np.float64]:
    # Hue stays on the 0-270 degree arc so the high end never wraps to magenta
    hue = (1 - t) * 270
    return hsv_to_rgb(hue / 360, 1.0, 1.0).reshape(-1, 3)


def _elevation(t: NDArray[np.float64]) -> NDArray[np.float64]:
    bands = [t < 0.2, t < 0.4, t < 0.6, t < 0.8]
    zero = np.zeros_like(t)
    one = np.ones_like(t)

    r = np.select(bands, [zero, zero, (t - 0.4) * 5, one], default=one)
    g = np.select(
        bands,
        [t * 5, one, one, 1 - (t - 0.6) * 5],
        default=(t - 0.8) * 5,
    )
    b = np.select(
        bands,
        [one, 1 - (t - 0.2) * 5, zero, zero],
        default=(t - 0.8) * 5,
    )
    return np.column_stack([r, g, b])


_PALETTES = {
    Palette.DEFAULT: _default,
    Palette.RAINBOW: _rainbow,
    Palette.ELEVATION: _elevation,
}


def colormap(values: ArrayLike, palette: Palette | str = Palette.DEFAULT) -> NDArray[np.float32]:
    """
    Map scalar values to RGB colors.

    Args:
        values: Sequence of N finite scalars (typically Z values)
        palette: One of "default", "rainbow", "elevation"

    Returns:
        (N, 3) float32 array with components in [0, 1]
    """
    mapper = _PALETTES[Palette.parse(palette)]
    t = normalize(values)
    if t.size == 0:
        return np.empty((0, 3), dtype=np.float32)

    rgb = mapper(t)
    return np.clip(rgb, 0.0, 1.0).astype(np.float32)


def constant_color(
    count: int,
    rgb: tuple[float, float, float] = DEFAULT_GRAY,
) -> NDArray[np.float32]:
    """Return an (count, 3) float32 array filled with a single color."""
    return np.tile(np.asarray(rgb, dtype=np.float32), (count, 1))
