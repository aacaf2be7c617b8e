"""
Command-line interface for loading, inspecting, and exporting point clouds.

This module provides the main CLI entry point. Commands are defined in
separate modules under the commands/ package.

Usage
-----

    # Summarize files and the combined height range
    cloudstudio inspect scan.csv terrain.pcd

    # Export a height band of several clouds to one CSV
    cloudstudio export scan.csv terrain.pcd -o out.csv --min-height 0 --max-height 5

    # Look at the clouds in 3D
    cloudstudio view scan.csv terrain.pcd --palette elevation
"""

import cyclopts

from cloud_studio.commands.export import export
from cloud_studio.commands.inspect import inspect
from cloud_studio.commands.view import view

app = cyclopts.App(
    name="cloudstudio",
    help="Load, colorize, filter, and export point clouds.",
)

# Register commands from separate modules
app.command(inspect, name="inspect")
app.command(export, name="export")
app.command(view, name="view")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
