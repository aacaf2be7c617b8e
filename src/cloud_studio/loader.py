"""
Load point-cloud files by extension and manage a batch of loaded clouds.

This is the seam between the pure parsers and a caller such as the CLI or a
viewer. A batch is processed one file at a time: each successful parse merges
its Z range into the session's HeightBounds before the next file starts, and
a file that fails is recorded and skipped without aborting the rest.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Sequence

from cloud_studio.bounds import HeightBounds
from cloud_studio.colormap import Palette, colormap
from cloud_studio.delimited import parse_delimited_text
from cloud_studio.errors import PointCloudError, UnsupportedFileTypeError
from cloud_studio.pcd import parse_pcd
from cloud_studio.records import PointCloudRecord, SourceKind

__all__ = [
    "DELIMITED_SUFFIXES",
    "PCD_SUFFIXES",
    "LoadedCloud",
    "LoadFailure",
    "BatchResult",
    "source_kind_for",
    "parse_bytes",
    "parse_file",
    "load_batch",
    "recolor",
    "select_clouds",
]

DELIMITED_SUFFIXES = (".csv", ".txt", ".xyz")
PCD_SUFFIXES = (".pcd",)

BoundsCallback = Callable[[float, float], None]


@dataclass(frozen=True)
class LoadedCloud:
    """A parsed cloud as held by the caller."""

    id: str
    name: str
    record: PointCloudRecord

    @property
    def kind(self) -> SourceKind:
        return self.record.kind

    @property
    def color_source(self) -> str:
        if self.record.has_explicit_color:
            return "file RGB"
        if self.kind is SourceKind.DELIMITED:
            return "Z colormap"
        return "constant gray"


@dataclass(frozen=True)
class LoadFailure:
    """A file that could not be loaded, and why."""

    name: str
    reason: str


@dataclass
class BatchResult:
    """Outcome of loading a batch of files, in input order."""

    clouds: list[LoadedCloud] = field(default_factory=list)
    failures: list[LoadFailure] = field(default_factory=list)
    bounds: HeightBounds = field(default_factory=HeightBounds.empty)

    @property
    def records(self) -> list[PointCloudRecord]:
        return [c.record for c in self.clouds]


def source_kind_for(name: str) -> SourceKind:
    """Pick the parser for a file name from its extension."""
    suffix = Path(name).suffix.lower()
    if suffix in DELIMITED_SUFFIXES:
        return SourceKind.DELIMITED
    if suffix in PCD_SUFFIXES:
        return SourceKind.PCD
    raise UnsupportedFileTypeError(f"unsupported file format: {suffix or '(none)'}", name)


def parse_bytes(
    name: str,
    data: bytes,
    palette: Palette | str = Palette.DEFAULT,
    on_bounds_update: BoundsCallback | None = None,
) -> PointCloudRecord:
    """
    Parse a file's contents, choosing the format from ``name``.

    Raises:
        PointCloudError: If the file cannot be parsed
    """
    kind = source_kind_for(name)
    if kind is SourceKind.DELIMITED:
        text = data.decode("utf-8-sig", errors="replace")
        return parse_delimited_text(text, palette, on_bounds_update, name=name)
    return parse_pcd(data, on_bounds_update, name=name)


async def parse_file(
    path: str | Path,
    palette: Palette | str = Palette.DEFAULT,
    on_bounds_update: BoundsCallback | None = None,
) -> PointCloudRecord:
    """
    Read and parse one file.

    The read runs in a worker thread so the event loop stays responsive;
    parsing itself happens on the loop's thread.
    """
    path = Path(path)
    source_kind_for(path.name)
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise PointCloudError(f"could not read file: {e.strerror or e}", path.name) from e
    return parse_bytes(path.name, data, palette, on_bounds_update)


async def load_batch(
    paths: Iterable[str | Path],
    palette: Palette | str = Palette.DEFAULT,
    bounds: HeightBounds | None = None,
) -> BatchResult:
    """
    Load files one after another, skipping the ones that fail.

    Args:
        paths: Files to load; the result keeps their order
        palette: Colormap for delimited files without color
        bounds: Bounds accumulated so far in the session

    Returns:
        BatchResult with the loaded clouds, per-file failures, and the
        widened bounds
    """
    palette = Palette.parse(palette)
    result = BatchResult(bounds=bounds if bounds is not None else HeightBounds.empty())

    def widen(z_min: float, z_max: float) -> None:
        result.bounds = result.bounds.merge(z_min, z_max)

    for i, path in enumerate(paths):
        path = Path(path)
        try:
            record = await parse_file(path, palette, widen)
        except PointCloudError as e:
            result.failures.append(LoadFailure(path.name, e.reason))
            continue

        result.clouds.append(LoadedCloud(id=f"{i}-{path.stem}", name=path.name, record=record))

    return result


def recolor(record: PointCloudRecord, palette: Palette | str) -> PointCloudRecord:
    """
    Recompute Z colors for a new palette.

    Only delimited clouds colored by the colormap change; clouds with file
    RGB and PCD clouds keep their colors and are returned as-is.
    """
    if record.has_explicit_color or record.kind is not SourceKind.DELIMITED:
        return record
    return record.with_colors(colormap(record.z_values, palette))


def select_clouds(
    clouds: Sequence[LoadedCloud],
    selected_ids: Iterable[str] | None = None,
) -> list[LoadedCloud]:
    """The selected clouds in load order, or every cloud when none is selected."""
    selected = set(selected_ids or ())
    if not selected:
        return list(clouds)
    return [c for c in clouds if c.id in selected]
