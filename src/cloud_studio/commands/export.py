"""
Export command for writing point clouds to X,Y,Z,R,G,B text.

Pipeline Steps
--------------

1. **Load**: Parse every input file; failed files are reported and skipped
2. **Select**: Keep the clouds named with --select (all when omitted)
3. **Filter**: Optionally keep only points inside --min-height/--max-height
4. **Transform**: Optionally translate, rotate, and scale the positions
5. **Save**: Write one CSV with a fixed X,Y,Z,R,G,B header

Colors are written as 0-255 integers. Clouds without file RGB are written
with their generated colors (Z colormap for delimited files, gray for PCD).

Example Usage
-------------

    cloudstudio export a.csv b.pcd -o merged.csv

    cloudstudio export terrain.xyz -o band.csv --palette elevation \\
        --min-height 120 --max-height 140

    cloudstudio export a.csv b.csv -o moved.csv --select 1-b \\
        --translate 10 0 0 --rotate 0 0 90
"""

import asyncio
from pathlib import Path
from typing import Annotated

import cyclopts

from cloud_studio.bounds import filter_by_height, resolve_height_range
from cloud_studio.commands.inspect import PaletteName, check_inputs, report_batch
from cloud_studio.errors import EmptyPointCloudError
from cloud_studio.export import write_export
from cloud_studio.loader import load_batch, select_clouds
from cloud_studio.transform import CloudTransform


def export(
    files: Annotated[
        list[Path],
        cyclopts.Parameter(
            help="Point-cloud files (.csv, .txt, .xyz, .pcd)",
        ),
    ],
    *,
    output: Annotated[
        Path,
        cyclopts.Parameter(
            "--output",
            "-o",
            help="Output CSV path",
        ),
    ],
    palette: Annotated[
        PaletteName,
        cyclopts.Parameter(
            "--palette",
            "-p",
            help="Colormap for files without RGB",
        ),
    ] = "default",
    select: Annotated[
        list[str] | None,
        cyclopts.Parameter(
            "--select",
            help="Cloud ids to export (as printed by 'inspect'). Default: all",
        ),
    ] = None,
    min_height: Annotated[
        float | None,
        cyclopts.Parameter(
            "--min-height",
            help="Drop points below this Z",
        ),
    ] = None,
    max_height: Annotated[
        float | None,
        cyclopts.Parameter(
            "--max-height",
            help="Drop points above this Z",
        ),
    ] = None,
    translate: Annotated[
        tuple[float, float, float],
        cyclopts.Parameter(
            "--translate",
            help="Translation X Y Z applied to exported points",
        ),
    ] = (0.0, 0.0, 0.0),
    rotate: Annotated[
        tuple[float, float, float],
        cyclopts.Parameter(
            "--rotate",
            help="Rotation about X, Y, Z in degrees",
        ),
    ] = (0.0, 0.0, 0.0),
    scale: Annotated[
        float,
        cyclopts.Parameter(
            "--scale",
            help="Uniform scale factor",
        ),
    ] = 1.0,
) -> None:
    """
    Load point clouds and export them as a single X,Y,Z,R,G,B CSV.

    Height filtering applies to the original Z values; the transform is
    applied afterwards, only to the written coordinates.
    """
    check_inputs(files)

    if scale <= 0:
        raise cyclopts.ValidationError("Scale must be positive")

    # Step 1: Load
    print("=" * 60)
    print("STEP 1: Loading point clouds")
    print("=" * 60)

    result = asyncio.run(load_batch(files, palette))
    report_batch(result)

    clouds = select_clouds(result.clouds, select)
    if select:
        missing = set(select) - {c.id for c in clouds}
        for cloud_id in sorted(missing):
            print(f"\n  WARNING: No loaded cloud with id {cloud_id}")

    if not clouds:
        raise cyclopts.ValidationError("No point clouds to export.")

    records = [c.record for c in clouds]

    # Step 2: Height filter
    if min_height is not None or max_height is not None:
        print("\n" + "=" * 60)
        print("STEP 2: Filtering by height")
        print("=" * 60)

        try:
            low, high = resolve_height_range(result.bounds, min_height, max_height)
        except ValueError as e:
            raise cyclopts.ValidationError(str(e)) from e
        print(f"\nKeeping Z in [{low:.2f}, {high:.2f}]")

        filtered = []
        for cloud, record in zip(clouds, records):
            try:
                kept = filter_by_height(record, low, high)
            except EmptyPointCloudError:
                print(f"  {cloud.name}: no points in range, skipped")
                continue
            print(f"  {cloud.name}: {kept.point_count:,} of {record.point_count:,} points")
            filtered.append(kept)
        records = filtered

        if not records:
            raise cyclopts.ValidationError("No points inside the height range.")

    transform = CloudTransform(translation=translate, rotation_deg=rotate, scale=scale)
    transforms = None
    if not transform.is_identity:
        print("\nApplying transform:")
        print(f"  Translate: {translate}")
        print(f"  Rotate (deg): {rotate}")
        print(f"  Scale: {scale}")
        transforms = {i: transform for i in range(len(records))}

    # Step 3: Save
    print("\n" + "=" * 60)
    print("STEP 3: Writing CSV")
    print("=" * 60)

    print(f"\nSaving to {output}...")
    written = write_export(output, records, transforms)
    file_size = output.stat().st_size / 1024
    print(f"  Points: {written:,}")
    print(f"  File size: {file_size:.1f} KB")

    print("\n" + "=" * 60)
    print("DONE!")
    print("=" * 60)
    print(f"\nOutput: {output}")
