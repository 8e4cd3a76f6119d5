"""
ForceColl: Contact Modeling and Wrench Distribution
===================================================

Provides:
- Friction pyramids approximating Coulomb friction cones
- Contact models (Empty, Surface, Grasp) with grasp matrices
- QP-based distribution of a desired wrench among contacts
- Scene configuration (YAML/JSON) with an explicit vertex registry
- Marker data for force and friction pyramid visualization

Quick Start:
    from forcecoll import SurfaceContact, WrenchDistribution, Pose, Wrench

    foot = SurfaceContact(
        "LeftFoot", 0.5,
        [[-0.1, -0.1, 0.0], [-0.1, 0.1, 0.0], [0.1, 0.0, 0.0]],
        Pose.identity(),
    )
    wrench_dist = WrenchDistribution([foot])
    result = wrench_dist.run(Wrench(moment=[0, 0, 0], force=[0, 0, 500]))
"""

from .spatial import Pose, Wrench, rot_x, rot_y, rot_z
from .friction_pyramid import FrictionPyramid
from .contact import (
    Contact,
    EmptyContact,
    SurfaceContact,
    GraspContact,
    VertexWithRidge,
    calc_total_wrench,
    calc_wrench_list,
    calc_local_wrench_list,
    get_contact_list_from_map,
)
from .qp_solver import (
    QpCoeff,
    QpResult,
    QpSolver,
    OsqpQpSolver,
    LsqQpSolver,
    AnyQpSolver,
    allocate_qp_solver,
)
from .wrench_distribution import WrenchDistribution, WrenchDistributionConfig
from .world import VertexRegistry
from .config import (
    load_config,
    load_scene,
    make_contact_from_config,
    parse_pose,
    parse_wrench,
)
from .markers import contact_markers, DEFAULT_FORCE_SCALE, DEFAULT_FRIC_PYRAMID_SCALE
from .audit import DistributionLogger
from .type_names import normalize_contact_type, normalize_qp_solver_type

__version__ = "0.1.0"
__all__ = [
    # Spatial types
    "Pose",
    "Wrench",
    "rot_x",
    "rot_y",
    "rot_z",

    # Contact model
    "FrictionPyramid",
    "Contact",
    "EmptyContact",
    "SurfaceContact",
    "GraspContact",
    "VertexWithRidge",
    "calc_total_wrench",
    "calc_wrench_list",
    "calc_local_wrench_list",
    "get_contact_list_from_map",

    # Distribution
    "WrenchDistribution",
    "WrenchDistributionConfig",

    # QP backends
    "QpCoeff",
    "QpResult",
    "QpSolver",
    "OsqpQpSolver",
    "LsqQpSolver",
    "AnyQpSolver",
    "allocate_qp_solver",

    # Configuration
    "VertexRegistry",
    "load_config",
    "load_scene",
    "make_contact_from_config",
    "parse_pose",
    "parse_wrench",

    # Visualization and audit
    "contact_markers",
    "DEFAULT_FORCE_SCALE",
    "DEFAULT_FRIC_PYRAMID_SCALE",
    "DistributionLogger",

    # Type names
    "normalize_contact_type",
    "normalize_qp_solver_type",
]
