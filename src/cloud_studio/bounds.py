"""
Elevation bounds and height filtering.

HeightBounds is a plain value owned by the caller: every successfully parsed
cloud widens it with merge_bounds(), and it never narrows during a session.
The height filter selects the points of a record whose Z lies inside a
user-chosen [low, high] range.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from cloud_studio.errors import EmptyPointCloudError
from cloud_studio.records import PointCloudRecord

__all__ = [
    "HeightBounds",
    "merge_bounds",
    "clamp_height_range",
    "resolve_height_range",
    "height_filter_indices",
    "filter_by_height",
]


@dataclass(frozen=True)
class HeightBounds:
    """Global [min, max] elevation range across loaded clouds."""

    min: float
    max: float

    @classmethod
    def empty(cls) -> "HeightBounds":
        """Bounds before any cloud is loaded; merging anything replaces them."""
        return cls(float("inf"), float("-inf"))

    @property
    def is_empty(self) -> bool:
        return self.min > self.max

    def merge(self, new_min: float, new_max: float) -> "HeightBounds":
        return merge_bounds(self, new_min, new_max)

    def as_tuple(self) -> tuple[float, float]:
        return self.min, self.max


def merge_bounds(current: HeightBounds, new_min: float, new_max: float) -> HeightBounds:
    """Widen ``current`` to include [new_min, new_max]."""
    return HeightBounds(
        min(current.min, float(new_min)),
        max(current.max, float(new_max)),
    )


def clamp_height_range(
    height_range: tuple[float, float],
    index: int,
    value: float,
) -> tuple[float, float]:
    """
    Set one edge of a [low, high] range without letting the edges cross.

    Editing the low edge (index 0) above the high edge pins it to the high
    edge; editing the high edge (index 1) below the low edge pins it to the
    low edge.
    """
    low, high = height_range
    if index == 0:
        return (min(value, high), high)
    if index == 1:
        return (low, max(value, low))
    raise IndexError(f"Height range index must be 0 or 1, got {index}")


def resolve_height_range(
    bounds: HeightBounds,
    low: float | None = None,
    high: float | None = None,
) -> tuple[float, float]:
    """
    Combine user-supplied height edges with the session bounds.

    A missing edge comes from ``bounds``. A single supplied edge is applied
    with clamp_height_range(), so it is pinned to the opposite session edge
    instead of crossing it.

    Raises:
        ValueError: If both edges are supplied and low is above high
    """
    if low is not None and high is not None:
        if low > high:
            raise ValueError(f"minimum height ({low:g}) is above maximum height ({high:g})")
        return (low, high)

    height_range = bounds.as_tuple()
    if low is not None:
        height_range = clamp_height_range(height_range, 0, low)
    if high is not None:
        height_range = clamp_height_range(height_range, 1, high)
    return height_range


def height_filter_indices(
    record: PointCloudRecord,
    low: float,
    high: float,
) -> NDArray[np.int64]:
    """Indices of points with low <= z <= high, in point order."""
    z = record.points[:, 2]
    return np.flatnonzero((z >= low) & (z <= high))


def filter_by_height(record: PointCloudRecord, low: float, high: float) -> PointCloudRecord:
    """Return a new record restricted to points inside [low, high]."""
    indices = height_filter_indices(record, low, high)
    if indices.size == 0:
        raise EmptyPointCloudError(
            f"no points between {low:g} and {high:g}", record.name
        )
    return record.subset(indices)
