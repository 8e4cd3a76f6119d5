"""
Visualization Markers
=====================
Marker data for force arrows and friction pyramids of contacts.

Nothing is rendered here; a viewer consumes the returned dataclasses.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .contact import Contact

# Default scale of force markers
DEFAULT_FORCE_SCALE = 2e-3

# Default scale of friction pyramid markers
DEFAULT_FRIC_PYRAMID_SCALE = 5e-2


@dataclass
class ArrowMarker:
    name: str
    start: np.ndarray
    end: np.ndarray


@dataclass
class PolyhedronMarker:
    name: str
    vertices: List[np.ndarray]
    triangles: List[Tuple[int, int, int]]


@dataclass
class PolygonMarker:
    name: str
    vertices: List[np.ndarray]


@dataclass
class PointMarker:
    name: str
    position: np.ndarray


def contact_markers(contact: Contact,
                    wrench_ratio: Optional[np.ndarray] = None,
                    force_scale: float = DEFAULT_FORCE_SCALE,
                    fric_pyramid_scale: float = DEFAULT_FRIC_PYRAMID_SCALE) -> list:
    """
    Markers of one contact.

    Args:
        contact: Contact
        wrench_ratio: Ridge forces of the contact (default: zeros)
        force_scale: Arrow length per unit force (<= 0 disables arrows)
        fric_pyramid_scale: Ridge length of pyramids (<= 0 disables pyramids)

    Returns:
        List of marker dataclasses
    """
    if wrench_ratio is None:
        wrench_ratio = np.zeros(contact.ridge_num)

    markers = []
    if force_scale > 0 or fric_pyramid_scale > 0:
        vertex_force_list = contact.vertex_force_list(wrench_ratio)
        for vertex_idx, vertex_with_ridge in enumerate(contact.vertex_with_ridge_list):
            vertex = vertex_with_ridge.vertex
            ridge_list = vertex_with_ridge.ridge_list

            if force_scale > 0:
                _, vertex_force = vertex_force_list[vertex_idx]
                markers.append(ArrowMarker(
                    f"{contact.name}_Force{vertex_idx}",
                    vertex.copy(),
                    vertex + force_scale * vertex_force,
                ))

            if fric_pyramid_scale > 0:
                vertices = [vertex.copy()]
                triangles = []
                for ridge_idx, ridge in enumerate(ridge_list):
                    vertices.append(vertex + fric_pyramid_scale * ridge)
                    triangles.append((0, ridge_idx + 1, (ridge_idx + 1) % len(ridge_list) + 1))
                markers.append(PolyhedronMarker(
                    f"{contact.name}_FricPyramid{vertex_idx}", vertices, triangles
                ))

    if contact.type == "Surface":
        markers.append(PolygonMarker(
            f"{contact.name}_SurfaceRegion",
            [v.vertex.copy() for v in contact.vertex_with_ridge_list],
        ))
    elif contact.type == "Grasp":
        for vertex_idx, vertex_with_ridge in enumerate(contact.vertex_with_ridge_list):
            markers.append(PointMarker(
                f"{contact.name}_GraspRegion_{vertex_idx}", vertex_with_ridge.vertex.copy()
            ))

    return markers
