"""
Contact Vertex Registry (Explicit Scope)
========================================
Named tables of contact vertices, filled once at startup and passed to
contact construction.
"""

import numpy as np
from typing import Dict, Iterable, List

from ..spatial import Pose


class VertexRegistry:
    """
    Registry of named vertex tables.

    Surface tables hold vertex positions; grasp tables hold vertex poses.
    Rule: contacts built from a name only see registered tables.
    """

    def __init__(self):
        self.surface_vertices: Dict[str, List[np.ndarray]] = {}
        self.grasp_vertices: Dict[str, List[Pose]] = {}

    def register_surface_vertices(self, name: str, vertices: Iterable) -> None:
        """
        Register surface vertices.

        Args:
            name: Table identifier
            vertices: Vertex positions in local coordinates
        """
        self.surface_vertices[name] = [np.asarray(v, dtype=float).reshape(3) for v in vertices]

    def register_grasp_vertices(self, name: str, poses: Iterable[Pose]) -> None:
        """
        Register grasp vertices.

        Args:
            name: Table identifier
            poses: Vertex poses in local coordinates
        """
        self.grasp_vertices[name] = list(poses)

    def get_surface_vertices(self, name: str) -> List[np.ndarray]:
        """Surface vertices; raises KeyError if the table is not registered."""
        if name not in self.surface_vertices:
            raise KeyError(f"Surface vertices '{name}' not registered")
        return self.surface_vertices[name]

    def get_grasp_vertices(self, name: str) -> List[Pose]:
        """Grasp vertex poses; raises KeyError if the table is not registered."""
        if name not in self.grasp_vertices:
            raise KeyError(f"Grasp vertices '{name}' not registered")
        return self.grasp_vertices[name]

    def load_surface_vertices(self, config: List[dict]) -> None:
        """Register every {name, vertices} entry of a document section."""
        for vertices_config in config:
            self.register_surface_vertices(vertices_config['name'], vertices_config['vertices'])

    def load_grasp_vertices(self, config: List[dict]) -> None:
        """Register every {name, vertices} entry; vertices are pose documents."""
        from ..config import parse_pose

        for vertices_config in config:
            self.register_grasp_vertices(
                vertices_config['name'],
                [parse_pose(v) for v in vertices_config['vertices']],
            )

    def unregister(self, name: str) -> None:
        """Remove a table of either kind."""
        self.surface_vertices.pop(name, None)
        self.grasp_vertices.pop(name, None)

    def list_surface_vertices(self) -> list:
        return list(self.surface_vertices.keys())

    def list_grasp_vertices(self) -> list:
        return list(self.grasp_vertices.keys())
