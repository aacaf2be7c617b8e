"""
Rigid-plus-scale transforms applied on top of parsed point clouds.

Transforms are overlays kept by the caller next to a cloud's id; applying one
returns new positions and never touches the record's buffers.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.transform import Rotation

__all__ = ["CloudTransform"]


@dataclass(frozen=True)
class CloudTransform:
    """
    Scale, then rotate (XYZ Euler angles in degrees), then translate.

    Scaling and rotation happen about the origin, matching how a scene
    graph applies an object's transform to its local coordinates.
    """

    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale: float = 1.0

    @classmethod
    def identity(cls) -> "CloudTransform":
        return cls()

    @property
    def is_identity(self) -> bool:
        return self == CloudTransform()

    def matrix(self) -> NDArray[np.float64]:
        """4x4 homogeneous transformation matrix."""
        rot = Rotation.from_euler("xyz", self.rotation_deg, degrees=True).as_matrix()
        m = np.eye(4)
        m[:3, :3] = rot * self.scale
        m[:3, 3] = self.translation
        return m

    def apply(self, positions: ArrayLike) -> NDArray[np.float32]:
        """
        Transform flat [x0, y0, z0, ...] positions.

        Returns:
            New flat float32 array of the same length
        """
        points = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        if self.is_identity:
            return points.astype(np.float32).ravel()

        m = self.matrix()
        moved = points @ m[:3, :3].T + m[:3, 3]
        return moved.astype(np.float32).ravel()
