"""
QP Solver Backends
==================
Solves the convex QP

    min  0.5 x^T H x + f^T x
    s.t. A x <= b
         x_min <= x <= x_max

Backends:
- osqp: OSQP (ADMM). Handles bounds and inequalities. The workspace is kept
  and updated in place while the problem dimensions are unchanged.
- lsq:  scipy bounded least squares (BVLS) on a square-root factor of H.
  Bounds only, high accuracy.
- any:  lsq for bound-only problems, osqp otherwise.
"""

import numpy as np
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import osqp
from scipy import sparse
from scipy.linalg import eigh
from scipy.optimize import lsq_linear

from .type_names import normalize_qp_solver_type


class QpCoeff:
    """Coefficient buffers of a QP with bounds and inequality constraints."""

    def __init__(self):
        self.setup(0, 0)

    def setup(self, dim_var: int, dim_ineq: int) -> None:
        """Reallocate zeroed buffers for new dimensions."""
        self.dim_var = int(dim_var)
        self.dim_ineq = int(dim_ineq)
        self.obj_mat = np.zeros((self.dim_var, self.dim_var))
        self.obj_vec = np.zeros(self.dim_var)
        self.ineq_mat = np.zeros((self.dim_ineq, self.dim_var))
        self.ineq_vec = np.zeros(self.dim_ineq)
        self.x_min = np.zeros(self.dim_var)
        self.x_max = np.zeros(self.dim_var)

    def objective(self, x: np.ndarray) -> float:
        return float(0.5 * x @ self.obj_mat @ x + self.obj_vec @ x)


@dataclass
class QpResult:
    """Result of a QP solve. x is returned as-is even when not converged."""
    x: np.ndarray
    status: str
    converged: bool
    solver: str = ""
    iters: int = 0
    solve_time_ms: float = 0.0
    obj_val: float = float('nan')

    def to_dict(self) -> dict:
        return {
            'status': self.status,
            'converged': self.converged,
            'solver': self.solver,
            'iters': self.iters,
            'solve_time_ms': self.solve_time_ms,
            'obj_val': self.obj_val,
        }


class QpSolver(ABC):
    """Backend interface."""

    name = "base"

    @abstractmethod
    def solve(self, coeff: QpCoeff) -> QpResult:
        raise NotImplementedError


class OsqpQpSolver(QpSolver):
    """
    OSQP backend.

    Constraint matrix is [I; A] with l = [x_min; -inf], u = [x_max; b].
    P and A are stored with a fixed dense pattern so that later cycles can
    call update() instead of setup().
    """

    name = "osqp"

    DEFAULT_SETTINGS = {
        'verbose': False,
        'eps_abs': 1e-7,
        'eps_rel': 1e-7,
        'max_iter': 20000,
        'polishing': True,
    }

    def __init__(self, settings: Optional[Dict] = None):
        self.settings = dict(self.DEFAULT_SETTINGS)
        self.settings.update(settings or {})
        self.solver = None
        self.prev_dims = None

        # Cached sparsity structure
        self._P_rows = None
        self._P_cols = None
        self._P_indptr = None
        self._A_indices = None
        self._A_indptr = None

    def _build_structure(self, n: int, m: int) -> None:
        # Upper triangle in column-major order: column j holds rows 0..j
        self._P_cols, self._P_rows = np.tril_indices(n)
        self._P_indptr = np.concatenate([[0], np.cumsum(np.arange(1, n + 1))]).astype(np.int64)

        # Column j of [I; A] holds row j then rows n..n+m-1
        indices = np.empty((n, m + 1), dtype=np.int64)
        indices[:, 0] = np.arange(n)
        indices[:, 1:] = np.arange(n, n + m)[None, :]
        self._A_indices = indices.reshape(-1)
        self._A_indptr = np.arange(0, n * (m + 1) + 1, m + 1, dtype=np.int64)

    def _P_data(self, coeff: QpCoeff) -> np.ndarray:
        obj_mat = 0.5 * (coeff.obj_mat + coeff.obj_mat.T)
        return obj_mat[self._P_rows, self._P_cols]

    def _A_data(self, coeff: QpCoeff) -> np.ndarray:
        stacked = np.vstack([np.ones((1, coeff.dim_var)), coeff.ineq_mat])
        return stacked.flatten(order='F')

    def solve(self, coeff: QpCoeff) -> QpResult:
        t_start = time.perf_counter()
        n, m = coeff.dim_var, coeff.dim_ineq

        P_data = None
        A_data = None
        l_vec = np.concatenate([coeff.x_min, np.full(m, -np.inf)])
        u_vec = np.concatenate([coeff.x_max, coeff.ineq_vec])

        if self.solver is None or self.prev_dims != (n, m):
            self._build_structure(n, m)
            P_data = self._P_data(coeff)
            A_data = self._A_data(coeff)
            P = sparse.csc_matrix((P_data, self._P_rows, self._P_indptr), shape=(n, n))
            A = sparse.csc_matrix((A_data, self._A_indices, self._A_indptr), shape=(n + m, n))
            self.solver = osqp.OSQP()
            self.solver.setup(P=P, q=coeff.obj_vec.copy(), A=A, l=l_vec, u=u_vec, **self.settings)
            self.prev_dims = (n, m)
        else:
            # Structure unchanged; update only data/vectors
            P_data = self._P_data(coeff)
            A_data = self._A_data(coeff)
            self.solver.update(q=coeff.obj_vec.copy(), l=l_vec, u=u_vec, Px=P_data, Ax=A_data)

        # Non-converged iterates are returned, not raised
        result = self.solver.solve(raise_error=False)
        status = str(result.info.status)
        converged = status == 'solved'

        x = result.x
        if x is None:
            x = np.full(n, np.nan)
        x = np.array(x, dtype=float).reshape(n)

        return QpResult(
            x=x,
            status=status,
            converged=converged,
            solver=self.name,
            iters=int(getattr(result.info, 'iter', 0)),
            solve_time_ms=(time.perf_counter() - t_start) * 1000.0,
            obj_val=float(result.info.obj_val) if converged else float('nan'),
        )

    def reset(self) -> None:
        """Drop the cached workspace."""
        self.solver = None
        self.prev_dims = None


class LsqQpSolver(QpSolver):
    """
    Bounded least-squares backend.

    H = V diag(w) V^T is rewritten as min 0.5 ||A x - b||^2 with
    A = diag(sqrt(w)) V^T and b = -diag(1/sqrt(w)) V^T f, then solved with
    BVLS. Requires f in the range of H, which holds for the wrench
    distribution objective. Variables with x_min == x_max are fixed and
    eliminated before the solve.
    """

    name = "lsq"

    DEFAULT_SETTINGS = {
        'tol': 1e-12,
        'max_iter': None,
        'rank_tol': 1e-14,
    }

    def __init__(self, settings: Optional[Dict] = None):
        self.settings = dict(self.DEFAULT_SETTINGS)
        self.settings.update(settings or {})

    def solve(self, coeff: QpCoeff) -> QpResult:
        if coeff.dim_ineq > 0:
            raise ValueError(
                "[QP] lsq backend supports bound constraints only; "
                f"got {coeff.dim_ineq} inequality rows (use 'osqp' or 'any')"
            )
        if np.any(coeff.x_min > coeff.x_max):
            raise ValueError("[QP] lower bound exceeds upper bound")
        t_start = time.perf_counter()

        obj_mat = 0.5 * (coeff.obj_mat + coeff.obj_mat.T)

        # Variables with x_min == x_max are eliminated; BVLS needs lb < ub
        fixed = coeff.x_min == coeff.x_max
        free = ~fixed
        x = np.where(fixed, coeff.x_min, 0.0)
        obj_vec = coeff.obj_vec[free] + obj_mat[np.ix_(free, fixed)] @ x[fixed]
        obj_mat = obj_mat[np.ix_(free, free)]

        status = 'solved'
        converged = True
        iters = 0
        if obj_mat.shape[0] > 0:
            eigval, eigvec = eigh(obj_mat)
            keep = eigval > self.settings['rank_tol'] * max(float(eigval.max(initial=0.0)), 1.0)

            if not np.any(keep):
                x[free] = np.clip(0.0, coeff.x_min[free], coeff.x_max[free])
            else:
                sqrt_w = np.sqrt(eigval[keep])
                basis = eigvec[:, keep]
                A = sqrt_w[:, None] * basis.T
                b = -(basis.T @ obj_vec) / sqrt_w

                res = lsq_linear(
                    A, b,
                    bounds=(coeff.x_min[free], coeff.x_max[free]),
                    method='bvls',
                    tol=self.settings['tol'],
                    max_iter=self.settings['max_iter'],
                )
                x[free] = res.x
                converged = bool(res.success)
                status = 'solved' if converged else f"lsq_status_{res.status}"
                iters = int(res.nit)

        return QpResult(
            x=x,
            status=status,
            converged=converged,
            solver=self.name,
            iters=iters,
            solve_time_ms=(time.perf_counter() - t_start) * 1000.0,
            obj_val=coeff.objective(x),
        )


class AnyQpSolver(QpSolver):
    """Dispatches bound-only problems to lsq and the rest to osqp."""

    name = "any"

    def __init__(self, settings: Optional[Dict] = None):
        settings = settings or {}
        self.lsq = LsqQpSolver(settings.get('lsq'))
        self.osqp = OsqpQpSolver(settings.get('osqp'))

    def solve(self, coeff: QpCoeff) -> QpResult:
        if coeff.dim_ineq == 0:
            return self.lsq.solve(coeff)
        return self.osqp.solve(coeff)


def allocate_qp_solver(qp_solver_type: str = "any", settings: Optional[Dict] = None) -> QpSolver:
    """
    Create a QP backend.

    Args:
        qp_solver_type: 'any', 'osqp', 'lsq' (or an alias)
        settings: Per-backend settings keyed by backend name,
            e.g. {'osqp': {'eps_abs': 1e-6}}

    Returns:
        QP solver instance
    """
    settings = settings or {}
    solver_type = normalize_qp_solver_type(qp_solver_type)

    if solver_type == "osqp":
        return OsqpQpSolver(settings.get('osqp'))
    elif solver_type == "lsq":
        return LsqQpSolver(settings.get('lsq'))
    elif solver_type == "any":
        return AnyQpSolver(settings)
    else:
        raise ValueError(f"Unknown QP solver type: {qp_solver_type}")
