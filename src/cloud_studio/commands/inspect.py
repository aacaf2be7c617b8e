"""
Inspect command for summarizing point-cloud files.

Loads every file the way the viewer would and reports, per file, the point
count, where its colors come from, its elevation range, and how many
malformed rows were skipped. Files that fail to load are listed with the
reason; they do not stop the rest of the batch.

Example Usage
-------------

    cloudstudio inspect scan_a.csv scan_b.pcd

    cloudstudio inspect terrain.xyz --palette elevation
"""

import asyncio
from pathlib import Path
from typing import Annotated, Literal

import cyclopts

from cloud_studio.loader import BatchResult, load_batch

PaletteName = Literal["default", "rainbow", "elevation"]


def check_inputs(files: list[Path]) -> None:
    """Reject missing input paths before any parsing starts."""
    for f in files:
        if not f.exists():
            raise cyclopts.ValidationError(f"Input file not found: {f}")


def report_batch(result: BatchResult) -> None:
    """Print per-file results and the merged elevation bounds."""
    for cloud in result.clouds:
        record = cloud.record
        z_min, z_max = record.z_range
        print(f"\n[{cloud.id}] {cloud.name} ({cloud.kind.value.upper()})")
        print(f"  Points: {record.point_count:,}")
        print(f"  Colors: {cloud.color_source}")
        print(f"  Z range: [{z_min:.2f}, {z_max:.2f}]")
        if record.skipped_rows:
            print(f"  Skipped rows: {record.skipped_rows:,}")

    for failure in result.failures:
        print(f"\n  WARNING: Failed to load {failure.name}: {failure.reason}")

    print(f"\nLoaded {len(result.clouds)} file(s), {len(result.failures)} failed")
    if not result.bounds.is_empty:
        print(f"  Height bounds: [{result.bounds.min:.2f}, {result.bounds.max:.2f}]")


def inspect(
    files: Annotated[
        list[Path],
        cyclopts.Parameter(
            help="Point-cloud files (.csv, .txt, .xyz, .pcd)",
        ),
    ],
    *,
    palette: Annotated[
        PaletteName,
        cyclopts.Parameter(
            "--palette",
            "-p",
            help="Colormap for files without RGB",
        ),
    ] = "default",
) -> None:
    """
    Summarize point-cloud files without writing anything.
    """
    check_inputs(files)

    print("=" * 60)
    print("Loading point clouds")
    print("=" * 60)

    result = asyncio.run(load_batch(files, palette))
    report_batch(result)

    if not result.clouds:
        raise cyclopts.ValidationError("None of the input files could be loaded.")
