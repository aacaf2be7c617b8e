"""
In-memory representation of a parsed point cloud.

Both ingestion paths (delimited text and PCD) produce a PointCloudRecord:
flat float32 position and color buffers plus the per-point Z values used for
colormaps and elevation bounds. Records are validated on construction and
their arrays are made read-only, so a record can be handed to any number of
callers without copying.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import ArrayLike, NDArray

from cloud_studio.errors import EmptyPointCloudError, PointCloudError

__all__ = ["SourceKind", "PointCloudRecord", "FLOAT32_MAX", "fits_float32", "to_rgb255"]

# Largest coordinate that survives narrowing to the float32 position buffer
FLOAT32_MAX = float(np.finfo(np.float32).max)


class SourceKind(str, Enum):
    """Which on-disk format a record was parsed from."""

    DELIMITED = "delimited"
    PCD = "pcd"


def fits_float32(values: ArrayLike) -> NDArray[np.bool_]:
    """Elementwise test that a value is finite and stays finite as float32."""
    return np.abs(np.asarray(values, dtype=np.float64)) <= FLOAT32_MAX


def to_rgb255(colors: ArrayLike) -> NDArray[np.int64]:
    """Convert [0, 1] color components to 0-255 integers, rounding halves up."""
    return np.floor(np.asarray(colors, dtype=np.float64) * 255 + 0.5).astype(np.int64)


def _frozen(array: ArrayLike, dtype) -> np.ndarray:
    out = np.array(array, dtype=dtype, copy=True).ravel()
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class PointCloudRecord:
    """
    A validated point cloud.

    Attributes:
        positions: Flat float32 array [x0, y0, z0, x1, ...] of length 3N
        colors: Flat float32 array of RGB in [0, 1], aligned with positions
        z_values: float64 array of the N elevation values, in point order
        has_explicit_color: True if the source file supplied per-point color
        kind: Source format of the record
        name: Source file name, used in reports
        skipped_rows: Number of malformed rows dropped while parsing
    """

    positions: NDArray[np.float32]
    colors: NDArray[np.float32]
    z_values: NDArray[np.float64]
    has_explicit_color: bool
    kind: SourceKind
    name: str = ""
    skipped_rows: int = field(default=0)

    def __post_init__(self) -> None:
        if self.positions.size % 3 or self.colors.size % 3:
            raise PointCloudError("positions and colors must hold whole XYZ/RGB triples", self.name)

        n = self.positions.size // 3
        if n == 0:
            raise EmptyPointCloudError("no valid points", self.name)
        if self.colors.size // 3 != n or self.z_values.size != n:
            raise PointCloudError(
                f"Buffer length mismatch: {n} positions, "
                f"{self.colors.size // 3} colors, {self.z_values.size} z values",
                self.name,
            )
        if not np.all(np.isfinite(self.positions)):
            raise PointCloudError("positions must be finite", self.name)
        if not np.all((self.colors >= 0) & (self.colors <= 1)):
            raise PointCloudError("colors must be normalized to [0, 1]", self.name)

    @classmethod
    def from_buffers(
        cls,
        positions: ArrayLike,
        colors: ArrayLike,
        z_values: ArrayLike | None = None,
        *,
        has_explicit_color: bool,
        kind: SourceKind,
        name: str = "",
        skipped_rows: int = 0,
    ) -> "PointCloudRecord":
        """
        Build a record from array-likes, copying them into read-only buffers.

        If z_values is omitted it is taken from the third coordinate of
        each position.
        """
        pos = _frozen(positions, np.float32)
        if z_values is None:
            z_values = np.asarray(positions, dtype=np.float64).reshape(-1, 3)[:, 2] if pos.size else []
        return cls(
            positions=pos,
            colors=_frozen(colors, np.float32),
            z_values=_frozen(z_values, np.float64),
            has_explicit_color=bool(has_explicit_color),
            kind=SourceKind(kind),
            name=name,
            skipped_rows=int(skipped_rows),
        )

    @property
    def point_count(self) -> int:
        return self.positions.size // 3

    @property
    def points(self) -> NDArray[np.float32]:
        """(N, 3) view of the positions."""
        return self.positions.reshape(-1, 3)

    @property
    def rgb(self) -> NDArray[np.float32]:
        """(N, 3) view of the colors."""
        return self.colors.reshape(-1, 3)

    @property
    def z_range(self) -> tuple[float, float]:
        return float(self.z_values.min()), float(self.z_values.max())

    @property
    def source_rows(self) -> NDArray[np.float64]:
        """
        Reconstructed [x, y, z, r, g, b] rows with RGB as 0-255 integers.

        Used when re-exporting a cloud without the original file.
        """
        return np.column_stack([self.points.astype(np.float64), to_rgb255(self.rgb)])

    def subset(self, indices: ArrayLike) -> "PointCloudRecord":
        """Return a new record holding only the points at ``indices``."""
        idx = np.asarray(indices, dtype=np.int64)
        return PointCloudRecord.from_buffers(
            self.points[idx],
            self.rgb[idx],
            self.z_values[idx],
            has_explicit_color=self.has_explicit_color,
            kind=self.kind,
            name=self.name,
            skipped_rows=self.skipped_rows,
        )

    def with_colors(self, colors: ArrayLike) -> "PointCloudRecord":
        """Return a copy of this record with a different color buffer."""
        return PointCloudRecord.from_buffers(
            self.positions,
            colors,
            self.z_values,
            has_explicit_color=self.has_explicit_color,
            kind=self.kind,
            name=self.name,
            skipped_rows=self.skipped_rows,
        )
