"""
Hand parsed clouds to the Open3D visualizer.
"""

from typing import Iterable

import numpy as np
import open3d as o3d

from cloud_studio.records import PointCloudRecord

__all__ = ["to_open3d", "show"]


def to_open3d(record: PointCloudRecord) -> o3d.geometry.PointCloud:
    """Build an Open3D point cloud from a record's buffers."""
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(record.points.astype(np.float64))
    pcd.colors = o3d.utility.Vector3dVector(record.rgb.astype(np.float64))
    return pcd


def show(
    records: Iterable[PointCloudRecord],
    window_name: str = "Point Clouds",
    point_size: float = 2.0,
) -> None:
    """Open an interactive window showing the records together."""
    geometries = [to_open3d(r) for r in records]

    vis = o3d.visualization.Visualizer()
    vis.create_window(window_name=window_name, width=1400, height=900)
    for geometry in geometries:
        vis.add_geometry(geometry)
    vis.get_render_option().point_size = point_size
    vis.run()
    vis.destroy_window()
