"""
Contact Model
=============
Contacts are sets of vertices, each carrying the ridges of a friction
pyramid. The grasp matrix maps the scalar force along every ridge to the
resulting wrench.

Column layout: vertex-major, ridge-minor. Each column is
[(vertex - origin) x ridge; ridge], moment rows above force rows.
"""

import numpy as np
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .friction_pyramid import FrictionPyramid
from .spatial import Pose, Wrench


@dataclass
class VertexWithRidge:
    """Contact vertex with its ridge directions, both in global coordinates."""
    vertex: np.ndarray
    ridge_list: List[np.ndarray]


class Contact(ABC):
    """
    Base class of all contacts.

    Subclasses fill grasp_mat, local_grasp_mat and vertex_with_ridge_list.
    max_wrench is expressed in the contact's local frame and may be changed
    at any time; None means the contact wrench is unbounded.
    """

    def __init__(self, name: str, max_wrench: Optional[Wrench] = None):
        """
        Args:
            name: Name of contact
            max_wrench: Optional bound on the local contact wrench
        """
        self.name = name
        self.max_wrench = max_wrench
        self.grasp_mat = np.zeros((6, 0))
        self.local_grasp_mat = np.zeros((6, 0))
        self.vertex_with_ridge_list: List[VertexWithRidge] = []

    @property
    @abstractmethod
    def type(self) -> str:
        """Contact type name."""
        raise NotImplementedError

    @abstractmethod
    def update_global_vertices(self, pose: Pose) -> None:
        """
        Move the contact to a new pose.

        Global vertices, global ridges and grasp_mat are recomputed in place;
        local_grasp_mat does not depend on the pose.
        """
        raise NotImplementedError

    @property
    def ridge_num(self) -> int:
        """Number of ridges over all vertices (columns of the grasp matrix)."""
        return self.grasp_mat.shape[1]

    def _check_wrench_ratio(self, wrench_ratio) -> np.ndarray:
        wrench_ratio = np.asarray(wrench_ratio, dtype=float).reshape(-1)
        if wrench_ratio.shape[0] != self.ridge_num:
            raise ValueError(
                f"[{self.name}] wrench ratio has size {wrench_ratio.shape[0]}, "
                f"expected {self.ridge_num}"
            )
        return wrench_ratio

    def calc_wrench(self, wrench_ratio, moment_origin=None) -> Wrench:
        """
        Calculate the contact wrench.

        Args:
            wrench_ratio: Force along each ridge (K,)
            moment_origin: Point about which moments are taken (default: origin)

        Returns:
            Contact wrench
        """
        wrench_ratio = self._check_wrench_ratio(wrench_ratio)
        if moment_origin is None:
            moment_origin = np.zeros(3)
        moment_origin = np.asarray(moment_origin, dtype=float)

        force_sum = np.zeros(3)
        moment_sum = np.zeros(3)
        idx = 0
        for vertex_with_ridge in self.vertex_with_ridge_list:
            arm = vertex_with_ridge.vertex - moment_origin
            for ridge in vertex_with_ridge.ridge_list:
                force = wrench_ratio[idx] * ridge
                force_sum += force
                moment_sum += np.cross(arm, force)
                idx += 1

        return Wrench(moment_sum, force_sum)

    def calc_local_wrench(self, wrench_ratio) -> Wrench:
        """Contact wrench in the contact's local frame."""
        wrench_ratio = self._check_wrench_ratio(wrench_ratio)
        return Wrench.from_vector(self.local_grasp_mat @ wrench_ratio)

    def vertex_force_list(self, wrench_ratio) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        Resultant force at every vertex.

        Returns:
            List of (vertex, force) pairs in global coordinates
        """
        wrench_ratio = self._check_wrench_ratio(wrench_ratio)
        result = []
        idx = 0
        for vertex_with_ridge in self.vertex_with_ridge_list:
            force = np.zeros(3)
            for ridge in vertex_with_ridge.ridge_list:
                force += wrench_ratio[idx] * ridge
                idx += 1
            result.append((vertex_with_ridge.vertex.copy(), force))
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, ridge_num={self.ridge_num})"


class EmptyContact(Contact):
    """Placeholder for a limb that is not in contact. Has no ridges."""

    @property
    def type(self) -> str:
        return "Empty"

    def update_global_vertices(self, pose: Pose) -> None:
        pass


def _fill_column(mat: np.ndarray, col: int, vertex: np.ndarray, ridge: np.ndarray) -> None:
    mat[:3, col] = np.cross(vertex, ridge)
    mat[3:, col] = ridge


class SurfaceContact(Contact):
    """
    Planar contact patch.

    All vertices share the ridge orientation given by the patch pose.
    """

    def __init__(self, name: str, fric_coeff: float,
                 local_vertices: Sequence[np.ndarray], pose: Pose,
                 max_wrench: Optional[Wrench] = None, ridge_num: int = 4):
        """
        Args:
            name: Name of contact
            fric_coeff: Friction coefficient
            local_vertices: Surface vertices in local coordinates
            pose: Pose of the contact frame
            max_wrench: Optional bound on the local contact wrench
            ridge_num: Number of ridges of each friction pyramid
        """
        super().__init__(name, max_wrench)
        self.fric_coeff = float(fric_coeff)
        self.local_vertices = [np.asarray(v, dtype=float).reshape(3) for v in local_vertices]
        self._fric_pyramid = FrictionPyramid(fric_coeff, ridge_num)

        col_num = len(self.local_vertices) * self._fric_pyramid.ridge_num
        self.grasp_mat = np.zeros((6, col_num))
        self.local_grasp_mat = np.zeros((6, col_num))

        col = 0
        for local_vertex in self.local_vertices:
            for local_ridge in self._fric_pyramid.local_ridge_list:
                _fill_column(self.local_grasp_mat, col, local_vertex, local_ridge)
                col += 1

        self.pose = pose
        self.update_global_vertices(pose)

    @property
    def type(self) -> str:
        return "Surface"

    def update_global_vertices(self, pose: Pose) -> None:
        self.pose = pose
        global_ridge_list = self._fric_pyramid.calc_global_ridge_list(pose.rotation)

        self.vertex_with_ridge_list = []
        col = 0
        for local_vertex in self.local_vertices:
            global_vertex = pose.transform_point(local_vertex)
            for global_ridge in global_ridge_list:
                _fill_column(self.grasp_mat, col, global_vertex, global_ridge)
                col += 1
            self.vertex_with_ridge_list.append(VertexWithRidge(global_vertex, global_ridge_list))


class GraspContact(Contact):
    """
    Contact made of oriented points, e.g. fingertips of an enveloping grasp.

    Each vertex has its own friction pyramid, oriented by the vertex pose.
    """

    def __init__(self, name: str, fric_coeff: float,
                 local_vertices: Sequence[Pose], pose: Pose,
                 max_wrench: Optional[Wrench] = None, ridge_num: int = 4):
        """
        Args:
            name: Name of contact
            fric_coeff: Friction coefficient
            local_vertices: Vertex poses relative to the contact frame
            pose: Pose of the contact frame
            max_wrench: Optional bound on the local contact wrench
            ridge_num: Number of ridges of each friction pyramid
        """
        super().__init__(name, max_wrench)
        self.fric_coeff = float(fric_coeff)
        self.local_vertices = list(local_vertices)
        self._fric_pyramid = FrictionPyramid(fric_coeff, ridge_num)

        col_num = len(self.local_vertices) * self._fric_pyramid.ridge_num
        self.grasp_mat = np.zeros((6, col_num))
        self.local_grasp_mat = np.zeros((6, col_num))

        col = 0
        for local_vertex_pose in self.local_vertices:
            local_ridge_list = self._fric_pyramid.calc_global_ridge_list(local_vertex_pose.rotation)
            for local_ridge in local_ridge_list:
                _fill_column(self.local_grasp_mat, col, local_vertex_pose.translation, local_ridge)
                col += 1

        self.pose = pose
        self.update_global_vertices(pose)

    @property
    def type(self) -> str:
        return "Grasp"

    def update_global_vertices(self, pose: Pose) -> None:
        self.pose = pose

        self.vertex_with_ridge_list = []
        col = 0
        for local_vertex_pose in self.local_vertices:
            global_vertex_pose = local_vertex_pose.compose(pose)
            global_vertex = global_vertex_pose.translation
            global_ridge_list = self._fric_pyramid.calc_global_ridge_list(global_vertex_pose.rotation)
            for global_ridge in global_ridge_list:
                _fill_column(self.grasp_mat, col, global_vertex, global_ridge)
                col += 1
            self.vertex_with_ridge_list.append(VertexWithRidge(global_vertex, global_ridge_list))


ContactCollection = Union[Sequence[Contact], Mapping]


def get_contact_list_from_map(contact_map: Mapping) -> List[Contact]:
    """Contacts of a mapping in its iteration order."""
    return list(contact_map.values())


def _iter_slices(contact_list: Sequence[Contact], wrench_ratio: np.ndarray):
    wrench_ratio = np.asarray(wrench_ratio, dtype=float).reshape(-1)
    total = sum(contact.ridge_num for contact in contact_list)
    if wrench_ratio.shape[0] != total:
        raise ValueError(
            f"wrench ratio has size {wrench_ratio.shape[0]}, expected {total}"
        )
    idx = 0
    for contact in contact_list:
        yield contact, wrench_ratio[idx:idx + contact.ridge_num]
        idx += contact.ridge_num


def calc_wrench_list(contacts: ContactCollection, wrench_ratio,
                     moment_origin=None) -> Union[List[Wrench], Dict]:
    """
    Wrench of each contact.

    Args:
        contacts: Sequence of contacts, or a mapping from key to contact
        wrench_ratio: Stacked ridge forces in iteration order
        moment_origin: Point about which moments are taken

    Returns:
        List of wrenches, or a dict with the same keys for a mapping
    """
    if isinstance(contacts, Mapping):
        keys = list(contacts.keys())
        wrenches = calc_wrench_list(get_contact_list_from_map(contacts), wrench_ratio, moment_origin)
        return dict(zip(keys, wrenches))
    return [contact.calc_wrench(ratio, moment_origin)
            for contact, ratio in _iter_slices(contacts, wrench_ratio)]


def calc_local_wrench_list(contacts: ContactCollection, wrench_ratio) -> Union[List[Wrench], Dict]:
    """Local wrench of each contact. Accepts the same collections as calc_wrench_list."""
    if isinstance(contacts, Mapping):
        keys = list(contacts.keys())
        wrenches = calc_local_wrench_list(get_contact_list_from_map(contacts), wrench_ratio)
        return dict(zip(keys, wrenches))
    return [contact.calc_local_wrench(ratio)
            for contact, ratio in _iter_slices(contacts, wrench_ratio)]


def calc_total_wrench(contacts: ContactCollection, wrench_ratio, moment_origin=None) -> Wrench:
    """Sum of the wrenches of all contacts."""
    wrenches = calc_wrench_list(contacts, wrench_ratio, moment_origin)
    if isinstance(wrenches, dict):
        wrenches = list(wrenches.values())
    total = Wrench.zero()
    for wrench in wrenches:
        total = total + wrench
    return total
