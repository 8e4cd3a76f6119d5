"""
Spatial Types: Pose and Wrench
==============================
Rigid transforms and 6D force vectors shared by contacts and the
distribution solver.

Wrench vectors are stacked as [moment; force], the same row order as the
grasp matrix.
"""

import numpy as np
from dataclasses import dataclass, field
from scipy.spatial.transform import Rotation


def rot_x(theta: float) -> np.ndarray:
    """Rotation matrix about the x axis."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def rot_y(theta: float) -> np.ndarray:
    """Rotation matrix about the y axis."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rot_z(theta: float) -> np.ndarray:
    """Rotation matrix about the z axis."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


@dataclass(eq=False)
class Pose:
    """
    Rigid transform of a frame relative to its parent.

    rotation maps vectors expressed in this frame into the parent frame.
    """
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.rotation = np.asarray(self.rotation, dtype=float).reshape(3, 3)
        self.translation = np.asarray(self.translation, dtype=float).reshape(3)

    @classmethod
    def identity(cls) -> 'Pose':
        return cls()

    @classmethod
    def from_translation(cls, translation) -> 'Pose':
        return cls(np.eye(3), translation)

    @classmethod
    def from_rpy(cls, rpy, translation=None) -> 'Pose':
        """
        Build a pose from roll/pitch/yaw angles.

        Args:
            rpy: [roll, pitch, yaw] in radians (extrinsic x-y-z)
            translation: Optional translation (3,)
        """
        rotation = Rotation.from_euler('xyz', np.asarray(rpy, dtype=float)).as_matrix()
        if translation is None:
            translation = np.zeros(3)
        return cls(rotation, translation)

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Express a point given in this frame in the parent frame."""
        return self.rotation @ np.asarray(point, dtype=float) + self.translation

    def compose(self, parent: 'Pose') -> 'Pose':
        """
        Pose of this frame in the parent's parent frame.

        `self` is given relative to `parent`.
        """
        return Pose(
            parent.rotation @ self.rotation,
            parent.rotation @ self.translation + parent.translation,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pose):
            return NotImplemented
        return (np.array_equal(self.rotation, other.rotation)
                and np.array_equal(self.translation, other.translation))

    def to_dict(self) -> dict:
        return {
            'rotation': self.rotation.tolist(),
            'translation': self.translation.tolist(),
        }


@dataclass(eq=False)
class Wrench:
    """Moment and force acting about a reference point."""
    moment: np.ndarray = field(default_factory=lambda: np.zeros(3))
    force: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.moment = np.asarray(self.moment, dtype=float).reshape(3)
        self.force = np.asarray(self.force, dtype=float).reshape(3)

    @classmethod
    def zero(cls) -> 'Wrench':
        return cls()

    @classmethod
    def from_vector(cls, vec) -> 'Wrench':
        """Build from a 6D [moment; force] vector."""
        vec = np.asarray(vec, dtype=float)
        if vec.shape != (6,):
            raise ValueError(f"Wrench vector must have shape (6,), got {vec.shape}")
        return cls(vec[:3].copy(), vec[3:].copy())

    def vector(self) -> np.ndarray:
        """6D [moment; force] vector."""
        return np.concatenate([self.moment, self.force])

    def __add__(self, other: 'Wrench') -> 'Wrench':
        return Wrench(self.moment + other.moment, self.force + other.force)

    def __sub__(self, other: 'Wrench') -> 'Wrench':
        return Wrench(self.moment - other.moment, self.force - other.force)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Wrench):
            return NotImplemented
        return np.array_equal(self.moment, other.moment) and np.array_equal(self.force, other.force)

    def to_dict(self) -> dict:
        return {
            'moment': self.moment.tolist(),
            'force': self.force.tolist(),
        }
