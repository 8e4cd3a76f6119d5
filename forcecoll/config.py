"""
Scene Configuration: YAML/JSON Contact Definitions
==================================================
Builds contacts and distribution settings from configuration documents.

Scene document layout:

    surfaceVerticesList:
      - name: footVertices
        vertices: [[-0.1, -0.05, 0.0], ...]
    graspVerticesList:
      - name: handVertices
        vertices:
          - translation: [0.0, -0.05, 0.0]
            rotation: [-1.5707963267948966, 0, 0]
    contactList:
      - key: LeftFoot
        type: Surface
        name: LeftFootContact
        fricCoeff: 0.5
        verticesName: footVertices
        pose: {translation: [0, 0.1, 0]}
        maxWrench: {force: [..], couple: [..]}
    wrenchDistribution:
      regularWeight: 1.0e-8
      ridgeForceMinMax: [0.0, 1.0e10]

Rotations are [roll, pitch, yaw] in radians, a [w, x, y, z] quaternion or
a 3x3 matrix.
"""

import json
import numpy as np
import yaml
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from scipy.spatial.transform import Rotation

from .contact import Contact, EmptyContact, GraspContact, SurfaceContact
from .spatial import Pose, Wrench
from .type_names import normalize_contact_type
from .world.vertex_registry import VertexRegistry
from .wrench_distribution import WrenchDistributionConfig


def parse_vector3(data) -> np.ndarray:
    """Parse a 3D vector."""
    vec = np.asarray(data, dtype=float)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3D vector, got {data}")
    return vec


def parse_pose(data: Optional[dict]) -> Pose:
    """
    Parse a pose document.

    Args:
        data: {translation: [x, y, z], rotation: [r, p, y], [w, x, y, z] or 3x3};
            both keys optional, None gives the identity

    Returns:
        Pose
    """
    if data is None:
        return Pose.identity()
    if isinstance(data, Pose):
        return data

    translation = parse_vector3(data.get('translation', [0.0, 0.0, 0.0]))
    rotation = data.get('rotation')
    if rotation is None:
        return Pose(np.eye(3), translation)

    rotation = np.asarray(rotation, dtype=float)
    if rotation.shape == (3,):
        return Pose.from_rpy(rotation, translation)
    if rotation.shape == (3, 3):
        return Pose(rotation, translation)
    if rotation.shape == (4,):
        # Quaternion [w, x, y, z]
        quat = np.roll(rotation, -1)
        return Pose(Rotation.from_quat(quat).as_matrix(), translation)
    raise ValueError(f"Invalid rotation: {data.get('rotation')}")


def parse_wrench(data: Optional[dict]) -> Optional[Wrench]:
    """Parse {force: [...], couple: [...]} ('moment' is accepted for couple)."""
    if data is None:
        return None
    if isinstance(data, Wrench):
        return data
    couple = data.get('couple', data.get('moment', [0.0, 0.0, 0.0]))
    return Wrench(parse_vector3(couple), parse_vector3(data.get('force', [0.0, 0.0, 0.0])))


def make_contact_from_config(config: dict, registry: Optional[VertexRegistry] = None) -> Contact:
    """
    Create a contact from a configuration document.

    Vertices come from `verticesName` (looked up in the registry) or from
    inline `vertices`.

    Raises:
        ValueError: Unknown contact type
        KeyError: verticesName not registered
    """
    contact_type = normalize_contact_type(config.get('type'))
    name = config['name']

    if contact_type == "Empty":
        return EmptyContact(name)

    registry = registry or VertexRegistry()
    fric_coeff = config['fricCoeff']
    pose = parse_pose(config.get('pose'))
    max_wrench = parse_wrench(config.get('maxWrench'))
    ridge_num = config.get('ridgeNum', 4)

    if contact_type == "Surface":
        if 'verticesName' in config:
            vertices = registry.get_surface_vertices(config['verticesName'])
        else:
            vertices = [parse_vector3(v) for v in config['vertices']]
        return SurfaceContact(name, fric_coeff, vertices, pose, max_wrench, ridge_num)
    elif contact_type == "Grasp":
        if 'verticesName' in config:
            vertices = registry.get_grasp_vertices(config['verticesName'])
        else:
            vertices = [parse_pose(v) for v in config['vertices']]
        return GraspContact(name, fric_coeff, vertices, pose, max_wrench, ridge_num)
    else:
        raise ValueError(f"Invalid contact type: {config.get('type')}")


def load_config(path: Union[str, Path]) -> dict:
    """
    Load a configuration document from YAML or JSON file.

    Args:
        path: Path to file

    Returns:
        Parsed document
    """
    path = Path(path)

    with open(path, 'r') as f:
        if path.suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    return data or {}


def load_scene(source: Union[str, Path, dict],
               registry: Optional[VertexRegistry] = None
               ) -> Tuple[Dict[str, Contact], WrenchDistributionConfig]:
    """
    Build contacts and distribution config from a scene document.

    Args:
        source: Path to a YAML/JSON file, or an already parsed document
        registry: Registry to fill with the document's vertex tables

    Returns:
        (contacts keyed by `key` (or name) in document order, config)
    """
    data = source if isinstance(source, dict) else load_config(source)
    registry = registry if registry is not None else VertexRegistry()

    registry.load_surface_vertices(data.get('surfaceVerticesList', []))
    registry.load_grasp_vertices(data.get('graspVerticesList', []))

    contacts: Dict[str, Contact] = {}
    for contact_config in data.get('contactList', []):
        contact = make_contact_from_config(contact_config, registry)
        contacts[contact_config.get('key', contact.name)] = contact

    config = WrenchDistributionConfig.from_dict(data.get('wrenchDistribution', {}))
    return contacts, config
