"""
View command for opening point clouds in an interactive 3D window.

Example Usage
-------------

    cloudstudio view scan.csv terrain.pcd --palette rainbow

    cloudstudio view terrain.xyz --min-height 100 --max-height 150
"""

import asyncio
from pathlib import Path
from typing import Annotated

import cyclopts

from cloud_studio.bounds import height_filter_indices, resolve_height_range
from cloud_studio.commands.inspect import PaletteName, check_inputs, report_batch
from cloud_studio.loader import load_batch


def view(
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
    min_height: Annotated[
        float | None,
        cyclopts.Parameter(
            "--min-height",
            help="Hide points below this Z",
        ),
    ] = None,
    max_height: Annotated[
        float | None,
        cyclopts.Parameter(
            "--max-height",
            help="Hide points above this Z",
        ),
    ] = None,
    point_size: Annotated[
        float,
        cyclopts.Parameter(
            "--point-size",
            help="Rendered point size in pixels (1-10)",
        ),
    ] = 2.0,
) -> None:
    """
    Display point clouds together in an Open3D window.
    """
    from cloud_studio.viewer import show  # Lazy import for faster --help

    check_inputs(files)

    if not 1 <= point_size <= 10:
        raise cyclopts.ValidationError("Point size must be between 1 and 10")

    result = asyncio.run(load_batch(files, palette))
    report_batch(result)

    if not result.clouds:
        raise cyclopts.ValidationError("None of the input files could be loaded.")

    records = result.records
    if min_height is not None or max_height is not None:
        try:
            low, high = resolve_height_range(result.bounds, min_height, max_height)
        except ValueError as e:
            raise cyclopts.ValidationError(str(e)) from e
        visible = []
        for record in records:
            indices = height_filter_indices(record, low, high)
            if indices.size:
                visible.append(record.subset(indices))
        if not visible:
            print(f"\n  WARNING: No points between {low:.2f} and {high:.2f}")
            return
        records = visible

    print("\nOpening viewer...")
    show(records, window_name="Point Clouds", point_size=point_size)
