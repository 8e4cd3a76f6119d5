"""
Friction Pyramid
================
Polyhedral approximation of a Coulomb friction cone.
"""

import numpy as np
from typing import List


class FrictionPyramid:
    """
    Pyramid of ridge directions approximating a friction cone.

    Ridge i has azimuth 2*pi*i/N and is tilted by atan(fric_coeff) from the
    local +z axis. Ridges are unit vectors.
    """

    def __init__(self, fric_coeff: float, ridge_num: int = 4):
        """
        Args:
            fric_coeff: Friction coefficient
            ridge_num: Number of ridges (<= 0 gives an empty pyramid)
        """
        self.fric_coeff = float(fric_coeff)
        self.local_ridge_list: List[np.ndarray] = []
        for i in range(max(int(ridge_num), 0)):
            theta = 2.0 * np.pi * i / ridge_num
            ridge = np.array([self.fric_coeff * np.cos(theta),
                              self.fric_coeff * np.sin(theta),
                              1.0])
            self.local_ridge_list.append(ridge / np.linalg.norm(ridge))

    @property
    def ridge_num(self) -> int:
        return len(self.local_ridge_list)

    def calc_global_ridge_list(self, rotation: np.ndarray) -> List[np.ndarray]:
        """
        Rotate the local ridges into another frame.

        Args:
            rotation: Rotation (3, 3) from the pyramid frame to the target frame

        Returns:
            List of ridge directions in the target frame
        """
        rotation = np.asarray(rotation, dtype=float)
        return [rotation @ ridge for ridge in self.local_ridge_list]
