"""
Delimited-text point clouds (CSV, TXT, XYZ).

Each non-blank line is one point: ``x, y, z`` optionally followed by
``r, g, b`` as 0-255 values. There is no required header; a header line is
simply rejected as a malformed row.

Decoding and parsing are separate steps:

1. decode_records() splits the text into rows of cells, typing each cell as
   a float when it looks numeric and leaving it as text otherwise.
2. parse_delimited() validates rows and builds a PointCloudRecord.

Color Detection
---------------

Whether a file carries color is decided once, from the field count of the
first row (six or more fields means RGB). Rows that are too short for the
chosen layout are dropped rather than partially filled, so every accepted
position has exactly one color.
"""

import csv
import math
import re
from typing import Callable, Iterable, Sequence

import numpy as np

from cloud_studio.colormap import Palette, colormap
from cloud_studio.errors import EmptyPointCloudError
from cloud_studio.records import FLOAT32_MAX, PointCloudRecord, SourceKind

__all__ = [
    "Cell",
    "Row",
    "decode_records",
    "parse_delimited",
    "parse_delimited_text",
]

Cell = float | str
Row = tuple[Cell, ...]
BoundsCallback = Callable[[float, float], None]

# Same shape of number a spreadsheet would export; "nan" and "inf" stay text
_NUMBER = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$")

_CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
_SNIFF_LINES = 20

# Channel value used when a color cell is not a number
_MISSING_CHANNEL = 128.0


def _to_cell(text: str) -> Cell:
    if _NUMBER.match(text):
        return float(text)
    return text.strip()


def _detect_delimiter(lines: Sequence[str]) -> str | None:
    """
    Pick the delimiter that splits the sample lines most consistently.

    Returns None when no candidate produces more than one field, meaning the
    fields are whitespace separated.
    """
    best = None
    best_score = (0, 0, 0)
    for delimiter in _CANDIDATE_DELIMITERS:
        counts = [c for c in (line.count(delimiter) for line in lines) if c]
        if len(counts) * 2 <= len(lines):
            continue
        # Prefer the delimiter found on most lines with a stable field count
        score = (len(counts), int(len(set(counts)) == 1), sum(counts))
        if score > best_score:
            best, best_score = delimiter, score
    return best


def decode_records(text: str) -> list[Row]:
    """
    Split delimited text into rows of typed cells.

    Blank lines and rows whose cells are all empty are skipped, and no header
    is assumed. Row structure is not validated here.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    delimiter = _detect_delimiter(lines[:_SNIFF_LINES])
    if delimiter is None:
        raw_rows: Iterable[list[str]] = (line.split() for line in lines)
    else:
        raw_rows = csv.reader(lines, delimiter=delimiter, skipinitialspace=True)

    return [
        tuple(_to_cell(cell) for cell in raw)
        for raw in raw_rows
        if any(cell.strip() for cell in raw)
    ]


def _coordinate(cell: Cell) -> float | None:
    if isinstance(cell, float) and abs(cell) <= FLOAT32_MAX:
        return cell
    return None


def _channel(cell: Cell) -> float:
    value = cell if isinstance(cell, float) and not math.isnan(cell) else _MISSING_CHANNEL
    return max(0.0, min(255.0, value)) / 255


def parse_delimited(
    rows: Sequence[Row],
    palette: Palette | str = Palette.DEFAULT,
    on_bounds_update: BoundsCallback | None = None,
    *,
    name: str = "",
) -> PointCloudRecord:
    """
    Build a point cloud from decoded rows.

    Args:
        rows: Output of decode_records()
        palette: Colormap used when the rows carry no color
        on_bounds_update: Called with (min_z, max_z) once the cloud is built
        name: Source file name for error messages

    Returns:
        A PointCloudRecord of kind DELIMITED

    Raises:
        EmptyPointCloudError: If no row holds a valid point
    """
    has_color = bool(rows) and len(rows[0]) >= 6
    min_fields = 6 if has_color else 3

    positions: list[float] = []
    colors: list[float] = []
    skipped = 0

    for row in rows:
        if len(row) < min_fields:
            skipped += 1
            continue

        x, y, z = (_coordinate(cell) for cell in row[:3])
        if x is None or y is None or z is None:
            skipped += 1
            continue

        positions.extend((x, y, z))
        if has_color:
            colors.extend(_channel(cell) for cell in row[3:6])

    if not positions:
        raise EmptyPointCloudError(
            "no valid points found; expected rows of x,y,z[,r,g,b]", name
        )

    z_values = np.asarray(positions[2::3], dtype=np.float64)
    if not has_color:
        colors = colormap(z_values, palette)

    record = PointCloudRecord.from_buffers(
        positions,
        colors,
        z_values,
        has_explicit_color=has_color,
        kind=SourceKind.DELIMITED,
        name=name,
        skipped_rows=skipped,
    )

    if on_bounds_update is not None:
        on_bounds_update(*record.z_range)

    return record


def parse_delimited_text(
    text: str,
    palette: Palette | str = Palette.DEFAULT,
    on_bounds_update: BoundsCallback | None = None,
    *,
    name: str = "",
) -> PointCloudRecord:
    """Decode and parse delimited text in one step."""
    return parse_delimited(
        decode_records(text), palette, on_bounds_update, name=name
    )
