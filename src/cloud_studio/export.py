"""
Export point clouds back to delimited text.

The output always has the header ``X,Y,Z,R,G,B`` and one row per point.
Positions are written as the shortest text that reads back to the same
float32 value; colors are converted from [0, 1] to 0-255 integers.
"""

import csv
import io
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np

from cloud_studio.records import PointCloudRecord, to_rgb255
from cloud_studio.transform import CloudTransform

__all__ = ["EXPORT_HEADER", "export_records", "write_export"]

EXPORT_HEADER = ("X", "Y", "Z", "R", "G", "B")


def _format_coordinate(value: np.float32) -> str:
    return np.format_float_positional(value, trim="-")


def export_records(
    records: Iterable[PointCloudRecord],
    transforms: Mapping[int, CloudTransform] | None = None,
) -> str:
    """
    Serialize records to X,Y,Z,R,G,B text.

    Args:
        records: Records to export, written in order
        transforms: Optional transform per record, keyed by the record's
            position in ``records``; records without one are written as-is

    Returns:
        The delimited text, newline terminated
    """
    transforms = transforms or {}
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)

    for i, record in enumerate(records):
        positions = record.positions
        if i in transforms:
            positions = transforms[i].apply(positions)

        points = positions.reshape(-1, 3)
        rgb = to_rgb255(record.rgb)
        for (x, y, z), (r, g, b) in zip(points, rgb):
            writer.writerow((
                _format_coordinate(x),
                _format_coordinate(y),
                _format_coordinate(z),
                int(r),
                int(g),
                int(b),
            ))

    return buffer.getvalue()


def write_export(
    path: str | Path,
    records: Iterable[PointCloudRecord],
    transforms: Mapping[int, CloudTransform] | None = None,
) -> int:
    """
    Write exported text to ``path``.

    Returns:
        Number of points written
    """
    records = list(records)
    Path(path).write_text(export_records(records, transforms), encoding="utf-8")
    return sum(r.point_count for r in records)
