"""
Wrench Distribution
===================
Distributes a desired total wrench among contacts by solving a QP over the
ridge forces of every contact.

    min  ||W^{1/2} (G x - w_des)||^2 + regular_weight ||x||^2
    s.t. ridge_min <= x <= ridge_max
         -max_wrench_c <= L_c x_c <= max_wrench_c   (bounded contacts only)

G stacks the global grasp matrices of all contacts in list order; L_c is the
local grasp matrix of contact c. Called once per control cycle; buffers are
reallocated only when the ridge count or the number of bounded contacts
changes.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .contact import Contact, calc_local_wrench_list, calc_wrench_list
from .markers import contact_markers, DEFAULT_FORCE_SCALE, DEFAULT_FRIC_PYRAMID_SCALE
from .qp_solver import QpCoeff, QpResult, QpSolver, allocate_qp_solver
from .spatial import Wrench
from .type_names import normalize_qp_solver_type


@dataclass
class WrenchDistributionConfig:
    """Configuration for wrench distribution."""

    # Per-axis weight of the wrench tracking error
    wrench_weight: Wrench = field(default_factory=lambda: Wrench(np.ones(3), np.ones(3)))

    # Weight of ridge force regularization (keeps the objective positive definite)
    regular_weight: float = 1e-8

    # Bounds applied to every ridge force
    ridge_force_min_max: Tuple[float, float] = (0.0, 1e10)

    # QP backend: 'any', 'osqp', 'lsq'
    qp_solver_type: str = "any"

    # Backend settings keyed by backend name
    qp_settings: Dict = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration."""
        if not isinstance(self.wrench_weight, Wrench):
            self.wrench_weight = Wrench.from_vector(self.wrench_weight)
        if np.any(self.wrench_weight.vector() < 0.0):
            raise ValueError("wrench_weight must be non-negative")
        if self.regular_weight < 0.0:
            raise ValueError(f"regular_weight must be non-negative, got {self.regular_weight}")
        ridge_min, ridge_max = self.ridge_force_min_max
        self.ridge_force_min_max = (float(ridge_min), float(ridge_max))
        if ridge_min > ridge_max:
            raise ValueError(
                f"ridge_force_min_max must satisfy min <= max, got {self.ridge_force_min_max}"
            )
        self.qp_solver_type = normalize_qp_solver_type(self.qp_solver_type)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            'wrench_weight': self.wrench_weight.to_dict(),
            'regular_weight': self.regular_weight,
            'ridge_force_min_max': list(self.ridge_force_min_max),
            'qp_solver_type': self.qp_solver_type,
            'qp_settings': self.qp_settings,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'WrenchDistributionConfig':
        """
        Create from dictionary.

        Accepts snake_case keys and the camelCase keys used in scene files
        (wrenchWeight, regularWeight, ridgeForceMinMax, qpSolverType).
        """
        d = dict(d or {})
        aliases = {
            'wrenchWeight': 'wrench_weight',
            'regularWeight': 'regular_weight',
            'ridgeForceMinMax': 'ridge_force_min_max',
            'qpSolverType': 'qp_solver_type',
            'qpSettings': 'qp_settings',
        }
        kwargs = {}
        for key, value in d.items():
            key = aliases.get(key, key)
            if key in cls.__dataclass_fields__:
                kwargs[key] = value

        if 'wrench_weight' in kwargs:
            weight = kwargs['wrench_weight']
            if isinstance(weight, dict):
                moment = weight.get('couple', weight.get('moment', np.ones(3)))
                kwargs['wrench_weight'] = Wrench(moment, weight.get('force', np.ones(3)))
            elif not isinstance(weight, Wrench):
                kwargs['wrench_weight'] = Wrench.from_vector(weight)
        if 'ridge_force_min_max' in kwargs:
            kwargs['ridge_force_min_max'] = tuple(kwargs['ridge_force_min_max'])

        return cls(**kwargs)


class WrenchDistribution:
    """
    Wrench distribution over a list of contacts.

    Contacts are shared with the caller and only read here; pose and bound
    updates made between run() calls are picked up on the next call.
    """

    def __init__(self, contact_list: Sequence[Contact],
                 config: Optional[WrenchDistributionConfig] = None,
                 qp_solver: Optional[QpSolver] = None):
        """
        Args:
            contact_list: Contacts, in the order used to stack ridge forces
            config: Distribution configuration
            qp_solver: QP backend (default: allocated from config.qp_solver_type)
        """
        self.contact_list = contact_list
        self.config = config or WrenchDistributionConfig()
        self.qp_solver = qp_solver or allocate_qp_solver(
            self.config.qp_solver_type, self.config.qp_settings
        )

        self.qp_coeff = QpCoeff()
        self.total_grasp_mat = np.zeros((6, 0))

        self.desired_total_wrench = Wrench.zero()
        self.result_total_wrench = Wrench.zero()
        self.result_wrench_ratio = np.zeros(self.ridge_num)
        self.last_solve_info: Optional[QpResult] = None

    @property
    def ridge_num(self) -> int:
        """Total number of ridges over all contacts."""
        return sum(contact.ridge_num for contact in self.contact_list)

    @property
    def state(self) -> str:
        """'uninitialized', 'ready', 'solved' or 'infeasible'."""
        if self.ridge_num == 0:
            return "uninitialized"
        if self.last_solve_info is None:
            return "ready"
        return "solved" if self.last_solve_info.converged else "infeasible"

    def _resize_if_needed(self, ridge_num: int, ineq_num: int) -> None:
        if self.qp_coeff.dim_var != ridge_num or self.qp_coeff.dim_ineq != ineq_num:
            self.qp_coeff.setup(ridge_num, ineq_num)
            self.total_grasp_mat = np.zeros((6, ridge_num))
        elif ineq_num != 0:
            # Rows of removed or moved bounds must not leak into this cycle
            self.qp_coeff.ineq_mat[:] = 0.0
            self.qp_coeff.ineq_vec[:] = 0.0

    def run(self, desired_total_wrench: Wrench, moment_origin=None) -> Wrench:
        """
        Distribute the desired wrench.

        Args:
            desired_total_wrench: Desired total wrench about moment_origin
            moment_origin: Point about which moments are taken (default: origin)

        Returns:
            Total wrench achieved by the resulting ridge forces
        """
        if moment_origin is None:
            moment_origin = np.zeros(3)
        moment_origin = np.asarray(moment_origin, dtype=float)

        ridge_num = self.ridge_num
        if ridge_num == 0:
            self.desired_total_wrench = desired_total_wrench
            self.result_wrench_ratio = np.zeros(0)
            self.result_total_wrench = Wrench.zero()
            return self.result_total_wrench

        ineq_num = 12 * sum(1 for contact in self.contact_list if contact.max_wrench is not None)
        self._resize_if_needed(ridge_num, ineq_num)

        # Stack grasp matrices and wrench bounds
        coeff = self.qp_coeff
        grasp_mat = self.total_grasp_mat
        col = 0
        ineq_row = 0
        for contact in self.contact_list:
            k = contact.ridge_num
            grasp_mat[:, col:col + k] = contact.grasp_mat
            if contact.max_wrench is not None:
                max_wrench = contact.max_wrench.vector()
                coeff.ineq_mat[ineq_row:ineq_row + 6, col:col + k] = -contact.local_grasp_mat
                coeff.ineq_mat[ineq_row + 6:ineq_row + 12, col:col + k] = contact.local_grasp_mat
                coeff.ineq_vec[ineq_row:ineq_row + 6] = max_wrench
                coeff.ineq_vec[ineq_row + 6:ineq_row + 12] = max_wrench
                ineq_row += 12
            col += k

        if np.linalg.norm(moment_origin) > 0.0:
            # Moment rows of each column about the new origin
            grasp_mat[:3, :] -= np.cross(moment_origin, grasp_mat[3:, :].T).T

        # Objective
        weight = self.config.wrench_weight.vector()
        weighted_grasp_mat = grasp_mat.T * weight[None, :]
        coeff.obj_mat[:] = weighted_grasp_mat @ grasp_mat
        coeff.obj_mat[np.diag_indices(ridge_num)] += self.config.regular_weight
        coeff.obj_vec[:] = -weighted_grasp_mat @ desired_total_wrench.vector()

        # Bounds
        ridge_min, ridge_max = self.config.ridge_force_min_max
        coeff.x_min[:] = ridge_min
        coeff.x_max[:] = ridge_max

        result = self.qp_solver.solve(coeff)
        if result.x.shape != (ridge_num,):
            raise RuntimeError(
                f"[WRENCH_DIST] QP solution has shape {result.x.shape}, expected ({ridge_num},)"
            )
        if not result.converged:
            print(f"[WRENCH_DIST] Warning: QP solver ({result.solver}) returned status "
                  f"'{result.status}'; using its result as-is")

        self.desired_total_wrench = desired_total_wrench
        self.result_wrench_ratio = result.x
        self.last_solve_info = result
        self.result_total_wrench = Wrench.from_vector(grasp_mat @ result.x)

        return self.result_total_wrench

    def calc_wrench_list(self, moment_origin=None) -> List[Wrench]:
        """Wrench of each contact for the last result."""
        return calc_wrench_list(self.contact_list, self.result_wrench_ratio, moment_origin)

    def calc_local_wrench_list(self) -> List[Wrench]:
        """Local wrench of each contact for the last result."""
        return calc_local_wrench_list(self.contact_list, self.result_wrench_ratio)

    def marker_list(self, force_scale: float = DEFAULT_FORCE_SCALE,
                    fric_pyramid_scale: float = DEFAULT_FRIC_PYRAMID_SCALE) -> list:
        """Visualization markers of every contact for the last result."""
        result_wrench_ratio = self.result_wrench_ratio
        if result_wrench_ratio.shape[0] != self.ridge_num:
            # No result for the current contact set yet
            result_wrench_ratio = np.zeros(self.ridge_num)

        markers = []
        idx = 0
        for contact in self.contact_list:
            k = contact.ridge_num
            markers.extend(contact_markers(contact, result_wrench_ratio[idx:idx + k],
                                           force_scale, fric_pyramid_scale))
            idx += k
        return markers
