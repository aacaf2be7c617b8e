"""
PCD (Point Cloud Data) files.

A PCD file starts with a text header of declaration lines::

    # .PCD v0.7 - Point Cloud Data file format
    VERSION 0.7
    FIELDS x y z r g b
    SIZE 4 4 4 1 1 1
    TYPE F F F U U U
    COUNT 1 1 1 1 1 1
    WIDTH 2
    HEIGHT 1
    POINTS 2
    DATA ascii

followed by the point data, either as whitespace-separated text (``ascii``)
or as packed records (``binary`` / ``binary_compressed``).

Two-Tier Parsing
----------------

Files are decoded by an ordered list of attempts. Each attempt returns a
PointCloudRecord or the NEXT_TIER sentinel to hand the file to the next one:

1. **parse_ascii**: fast path for ASCII data. Reads positions and separate
   0-255 color channels straight from the text lines.
2. **parse_with_open3d**: general fallback through Open3D's PCD reader.
   Handles binary payloads and packed float ``rgb`` fields.

Files without color get a constant gray so every point still has one.
"""

import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

import numpy as np

from cloud_studio.colormap import DEFAULT_GRAY, constant_color
from cloud_studio.errors import (
    DecodeDelegateError,
    EmptyPointCloudError,
    UnrecognizedFormatError,
)
from cloud_studio.records import PointCloudRecord, SourceKind, fits_float32

__all__ = [
    "PcdHeader",
    "NEXT_TIER",
    "COLOR_FIELD_NAMES",
    "parse_header",
    "parse_ascii",
    "parse_with_open3d",
    "parse_pcd",
]

PCD_MARKER = "# .PCD"
COLOR_FIELD_NAMES = frozenset({"rgb", "rgba", "r", "g", "b", "red", "green", "blue"})
PACKED_COLOR_FIELDS = ("rgb", "rgba")
SEPARATE_COLOR_FIELDS = (("r", "g", "b"), ("red", "green", "blue"))

# Headers are a handful of short lines; stop looking after this many bytes
_MAX_HEADER_BYTES = 64 * 1024


class _Tier(Enum):
    NEXT = "next"


NEXT_TIER = _Tier.NEXT

BoundsCallback = Callable[[float, float], None]


@dataclass(frozen=True)
class PcdHeader:
    """Declarations read from a PCD header."""

    version: str | None
    fields: tuple[str, ...]
    counts: tuple[int, ...]
    points: int
    data: str
    data_offset: int

    @property
    def is_ascii(self) -> bool:
        return self.data == "ascii"

    @property
    def has_color(self) -> bool:
        return any(f.lower() in COLOR_FIELD_NAMES for f in self.fields)

    def column_of(self, field_name: str) -> int | None:
        """Index of the first text column holding ``field_name``."""
        column = 0
        for name, count in zip(self.fields, self.counts):
            if name.lower() == field_name:
                return column
            column += count
        return None

    def position_columns(self) -> tuple[int, int, int]:
        cols = [self.column_of(axis) for axis in ("x", "y", "z")]
        if None in cols:
            return (0, 1, 2)
        return tuple(cols)

    def color_columns(self) -> tuple[int, int, int] | None:
        """
        Columns of separate R, G, B channels.

        Falls back to the three columns after the position when a color
        field is declared under another name. None when there is no color.
        """
        for names in SEPARATE_COLOR_FIELDS:
            cols = [self.column_of(n) for n in names]
            if None not in cols:
                return tuple(cols)
        if self.has_color:
            return (3, 4, 5)
        return None

    @property
    def has_packed_color(self) -> bool:
        names = {f.lower() for f in self.fields}
        separate = any(set(group) <= names for group in SEPARATE_COLOR_FIELDS)
        return not separate and any(p in names for p in PACKED_COLOR_FIELDS)


def _int(token: str, default: int = 0) -> int:
    try:
        return int(token)
    except ValueError:
        return default


def parse_header(data: bytes, name: str = "") -> PcdHeader:
    """
    Read the header declarations of a PCD file.

    Raises:
        UnrecognizedFormatError: If the file has neither the ``# .PCD``
            marker nor a VERSION line
    """
    version = None
    fields: tuple[str, ...] = ()
    counts: tuple[int, ...] = ()
    points = None
    width = height = 0
    encoding = ""
    has_marker = False
    offset = 0

    limit = min(len(data), _MAX_HEADER_BYTES)
    while offset < limit:
        end = data.find(b"\n", offset)
        if end == -1:
            end = len(data)
        line = data[offset:end].decode("latin-1").strip()
        offset = end + 1

        if not line:
            continue
        if line.startswith("#"):
            has_marker = has_marker or line.startswith(PCD_MARKER)
            continue

        keyword, _, rest = line.partition(" ")
        parts = rest.split()
        keyword = keyword.upper()
        if keyword == "VERSION":
            version = rest.strip()
        elif keyword == "FIELDS":
            fields = tuple(parts)
        elif keyword == "COUNT":
            counts = tuple(max(1, _int(p, 1)) for p in parts)
        elif keyword == "WIDTH" and parts:
            width = _int(parts[0])
        elif keyword == "HEIGHT" and parts:
            height = _int(parts[0])
        elif keyword == "POINTS" and parts:
            points = _int(parts[0])
        elif keyword == "DATA":
            encoding = parts[0].lower() if parts else ""
            break

    if not has_marker and version is None:
        raise UnrecognizedFormatError("not a valid PCD file (missing header signature)", name)

    if len(counts) != len(fields):
        counts = (1,) * len(fields)
    if points is None:
        points = width * height

    return PcdHeader(
        version=version,
        fields=fields,
        counts=counts,
        points=points,
        data=encoding,
        data_offset=min(offset, len(data)),
    )


def _number(token: str) -> float:
    try:
        return float(token)
    except ValueError:
        return float("nan")


def _channel(value: float) -> float:
    if np.isnan(value):
        value = 128.0
    return max(0.0, min(255.0, value)) / 255


def _build_record(
    positions,
    colors,
    *,
    has_explicit_color: bool,
    name: str,
    skipped: int,
) -> PointCloudRecord:
    points = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if colors is None:
        colors = constant_color(len(points), DEFAULT_GRAY)
    return PointCloudRecord.from_buffers(
        points,
        colors,
        points[:, 2],
        has_explicit_color=has_explicit_color,
        kind=SourceKind.PCD,
        name=name,
        skipped_rows=skipped,
    )


def parse_ascii(data: bytes, header: PcdHeader, name: str = "") -> "PointCloudRecord | _Tier":
    """
    Parse ASCII point data directly from the text lines.

    Returns:
        A PointCloudRecord, or NEXT_TIER when the data is not ASCII, declares
        no points, uses packed color, or yields no valid line
    """
    if not header.is_ascii or header.points <= 0 or header.has_packed_color:
        return NEXT_TIER

    pos_cols = header.position_columns()
    color_cols = header.color_columns()
    needed = max(pos_cols + (color_cols or ())) + 1

    positions: list[float] = []
    colors: list[float] = []
    skipped = 0

    text = data[header.data_offset:].decode("utf-8", errors="replace")
    for line in text.splitlines():
        tokens = line.split()
        if not tokens:
            continue
        if len(tokens) < 3 or len(tokens) < needed:
            skipped += 1
            continue

        values = [_number(t) for t in tokens]
        xyz = [values[c] for c in pos_cols]
        if not np.all(fits_float32(xyz)):
            skipped += 1
            continue

        positions.extend(xyz)
        if color_cols is not None:
            colors.extend(_channel(values[c]) for c in color_cols)

    if not positions:
        return NEXT_TIER

    return _build_record(
        positions,
        colors if color_cols is not None else None,
        has_explicit_color=color_cols is not None,
        name=name,
        skipped=skipped,
    )


def parse_with_open3d(data: bytes, header: PcdHeader, name: str = "") -> PointCloudRecord:
    """
    Decode a PCD file with Open3D.

    Open3D reads from paths, so the bytes are staged in a temporary file.

    Raises:
        DecodeDelegateError: If Open3D fails to read the file, or reads no
            point from a binary payload the header says is non-empty
        EmptyPointCloudError: If no finite point was decoded
    """
    import open3d as o3d  # Lazy import, only binary files need it

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "cloud.pcd"
        path.write_bytes(data)
        try:
            pcd = o3d.io.read_point_cloud(str(path), format="pcd")
        except Exception as e:
            raise DecodeDelegateError(f"PCD decoder failed: {e}", name) from e

    points = np.asarray(pcd.points, dtype=np.float64)
    if points.size == 0:
        # Open3D warns and returns an empty cloud on a payload it cannot read
        if header.points > 0 and not header.is_ascii:
            raise DecodeDelegateError(
                f"PCD decoder read no points, header declares {header.points}", name
            )
        raise EmptyPointCloudError("point cloud is empty", name)

    finite = np.all(fits_float32(points), axis=1)
    colors = None
    if pcd.has_colors():
        colors = np.clip(np.asarray(pcd.colors, dtype=np.float64)[finite], 0.0, 1.0)

    return _build_record(
        points[finite],
        colors,
        has_explicit_color=colors is not None,
        name=name,
        skipped=int(np.count_nonzero(~finite)),
    )


PARSE_TIERS = (parse_ascii, parse_with_open3d)


def parse_pcd(
    data: bytes,
    on_bounds_update: BoundsCallback | None = None,
    *,
    name: str = "",
) -> PointCloudRecord:
    """
    Parse a PCD file's bytes into a PointCloudRecord.

    Args:
        data: Whole file contents
        on_bounds_update: Called with (min_z, max_z) once the cloud is built
        name: Source file name for error messages

    Raises:
        UnrecognizedFormatError: If the header signature is missing
        DecodeDelegateError: If the fallback decoder fails
        EmptyPointCloudError: If the file holds no valid point
    """
    header = parse_header(data, name)

    record = NEXT_TIER
    for tier in PARSE_TIERS:
        record = tier(data, header, name)
        if record is not NEXT_TIER:
            break

    if record is NEXT_TIER:
        raise EmptyPointCloudError("point cloud is empty", name)

    if on_bounds_update is not None:
        on_bounds_update(*record.z_range)
    return record
