"""
Wrench Distribution Tests
=========================
End-to-end distribution scenarios, bounds and buffer management.
"""

import pytest
import numpy as np


def _left_foot():
    from forcecoll import Pose, SurfaceContact

    return SurfaceContact(
        "LeftFootContact", 0.5,
        [np.array([-0.1, -0.1, 0.0]), np.array([-0.1, 0.1, 0.0]), np.array([0.1, 0.0, 0.0])],
        Pose.identity(),
    )


def _right_foot():
    from forcecoll import Pose, SurfaceContact

    return SurfaceContact(
        "RightFootContact", 0.5, [np.zeros(3)],
        Pose.from_translation([0.0, -0.5, 0.5]),
    )


def _desired_wrench():
    from forcecoll import Wrench

    # [moment; force] = [10, 0, 0, 0, 0, 500]
    return Wrench.from_vector([10.0, 0.0, 0.0, 0.0, 0.0, 500.0])


def _square_foot(max_wrench=None):
    from forcecoll import Pose, SurfaceContact

    return SurfaceContact(
        "SquareFoot", 0.5,
        [np.array([-0.1, -0.1, 0.0]), np.array([-0.1, 0.1, 0.0]),
         np.array([0.1, 0.1, 0.0]), np.array([0.1, -0.1, 0.0])],
        Pose.identity(), max_wrench,
    )


class _RecordingSolver:
    """Wraps a backend and keeps a copy of every problem it receives."""

    name = "recording"

    def __init__(self, solver=None):
        from forcecoll import LsqQpSolver

        self.solver = solver or LsqQpSolver()
        self.calls = []

    def solve(self, coeff):
        self.calls.append({
            'obj_mat': coeff.obj_mat.copy(),
            'obj_vec': coeff.obj_vec.copy(),
            'ineq_mat': coeff.ineq_mat.copy(),
            'ineq_vec': coeff.ineq_vec.copy(),
            'x_min': coeff.x_min.copy(),
            'x_max': coeff.x_max.copy(),
        })
        if coeff.dim_ineq > 0:
            from forcecoll import OsqpQpSolver
            return OsqpQpSolver().solve(coeff)
        return self.solver.solve(coeff)


class _FailingSolver:
    name = "failing"

    def solve(self, coeff):
        raise AssertionError("backend must not be called")


def test_two_surface_contacts():
    """Two surface contacts reproduce the desired wrench with pushing forces only."""
    from forcecoll import WrenchDistribution, calc_wrench_list

    contact_list = [_left_foot(), _right_foot()]
    desired = _desired_wrench()
    wrench_dist = WrenchDistribution(contact_list)
    assert wrench_dist.state == "ready"

    result = wrench_dist.run(desired)

    assert np.linalg.norm((desired - result).vector()) < 1e-2
    assert wrench_dist.state == "solved"
    assert wrench_dist.result_wrench_ratio.shape == (16,)
    assert np.all(wrench_dist.result_wrench_ratio >= -1e-9)
    for wrench in calc_wrench_list(contact_list, wrench_dist.result_wrench_ratio):
        assert np.linalg.norm(wrench.vector()) > 1e-10


def test_two_surface_contacts_osqp():
    """The OSQP backend reaches the same wrench."""
    from forcecoll import WrenchDistribution, WrenchDistributionConfig

    contact_list = [_left_foot(), _right_foot()]
    desired = _desired_wrench()
    config = WrenchDistributionConfig(qp_solver_type="osqp")
    wrench_dist = WrenchDistribution(contact_list, config)

    result = wrench_dist.run(desired)

    assert wrench_dist.last_solve_info.solver == "osqp"
    assert np.linalg.norm((desired - result).vector()) < 1e-2
    assert np.all(wrench_dist.result_wrench_ratio >= -1e-6)


def test_contains_empty_contact():
    """An empty contact takes no ridges and no wrench."""
    from forcecoll import EmptyContact, WrenchDistribution, calc_wrench_list

    contact_list = [_left_foot(), _right_foot(), EmptyContact("LeftHandContact")]
    desired = _desired_wrench()
    wrench_dist = WrenchDistribution(contact_list)
    result = wrench_dist.run(desired)

    assert np.linalg.norm((desired - result).vector()) < 1e-2
    wrench_list = calc_wrench_list(contact_list, wrench_dist.result_wrench_ratio)
    assert np.linalg.norm(wrench_list[0].vector()) > 1e-10
    assert np.linalg.norm(wrench_list[1].vector()) > 1e-10
    assert np.linalg.norm(wrench_list[2].vector()) < 1e-10


def test_contains_grasp_contact():
    """Surface and grasp contacts together."""
    from forcecoll import GraspContact, Pose, WrenchDistribution, rot_x, rot_y

    left_hand = GraspContact(
        "LeftHandContact", 0.5,
        [Pose.identity(), Pose(rot_x(np.pi))],
        Pose(rot_y(np.pi / 2), [0.5, 0.5, 1.0]),
    )
    contact_list = [_left_foot(), _right_foot(), left_hand]
    desired = _desired_wrench()
    wrench_dist = WrenchDistribution(contact_list)
    result = wrench_dist.run(desired)

    assert np.linalg.norm((desired - result).vector()) < 1e-2
    assert np.all(wrench_dist.result_wrench_ratio >= -1e-9)
    for wrench in wrench_dist.calc_wrench_list():
        assert np.linalg.norm(wrench.vector()) > 1e-10


def test_zero_contact_shortcut():
    """Only empty contacts: zero wrench without calling the backend."""
    from forcecoll import EmptyContact, WrenchDistribution

    wrench_dist = WrenchDistribution([EmptyContact("A"), EmptyContact("B")], qp_solver=_FailingSolver())
    assert wrench_dist.state == "uninitialized"

    result = wrench_dist.run(_desired_wrench())

    np.testing.assert_array_equal(result.vector(), np.zeros(6))
    assert wrench_dist.result_wrench_ratio.shape == (0,)
    assert wrench_dist.state == "uninitialized"
    np.testing.assert_allclose(wrench_dist.desired_total_wrench.vector(), _desired_wrench().vector())


def test_objective_coefficients():
    """H = G^T W G + lambda I and f = -G^T W w_des."""
    from forcecoll import Wrench, WrenchDistribution, WrenchDistributionConfig

    contact_list = [_left_foot(), _right_foot()]
    weight = Wrench([1.0, 2.0, 3.0], [4.0, 5.0, 6.0])
    config = WrenchDistributionConfig(wrench_weight=weight, regular_weight=1e-3,
                                      ridge_force_min_max=(0.0, 50.0))
    solver = _RecordingSolver()
    wrench_dist = WrenchDistribution(contact_list, config, qp_solver=solver)
    desired = _desired_wrench()
    wrench_dist.run(desired)

    G = np.hstack([contact.grasp_mat for contact in contact_list])
    W = np.diag(weight.vector())
    call = solver.calls[-1]
    np.testing.assert_allclose(call['obj_mat'], G.T @ W @ G + 1e-3 * np.eye(16), atol=1e-10)
    np.testing.assert_allclose(call['obj_vec'], -G.T @ W @ desired.vector(), atol=1e-10)
    np.testing.assert_allclose(call['x_min'], np.zeros(16))
    np.testing.assert_allclose(call['x_max'], np.full(16, 50.0))
    assert call['ineq_mat'].shape == (0, 16)
    assert np.all(wrench_dist.result_wrench_ratio <= 50.0 + 1e-9)


def test_moment_origin():
    """Desired and result wrenches are taken about the moment origin."""
    from forcecoll import WrenchDistribution, calc_total_wrench

    contact_list = [_left_foot(), _right_foot()]
    origin = np.array([0.0, -0.2, 0.3])
    desired = _desired_wrench()
    wrench_dist = WrenchDistribution(contact_list)
    result = wrench_dist.run(desired, origin)

    assert np.linalg.norm((desired - result).vector()) < 1e-2
    total = calc_total_wrench(contact_list, wrench_dist.result_wrench_ratio, origin)
    np.testing.assert_allclose(total.vector(), result.vector(), atol=1e-8)
    # Contacts are not modified by the shift
    G = np.hstack([contact.grasp_mat for contact in contact_list])
    np.testing.assert_allclose(
        calc_total_wrench(contact_list, wrench_dist.result_wrench_ratio).vector(),
        G @ wrench_dist.result_wrench_ratio, atol=1e-8,
    )


def test_max_wrench_bound_satisfied():
    """A bounded contact keeps its local wrench inside the bound."""
    from forcecoll import Wrench, WrenchDistribution

    max_wrench = Wrench([2.0, 2.0, 2.0], [10.0, 10.0, 100.0])
    contact = _square_foot(max_wrench)
    desired = Wrench([0.0, 0.0, 0.0], [0.0, 0.0, 500.0])
    wrench_dist = WrenchDistribution([contact])
    wrench_dist.run(desired)

    assert wrench_dist.last_solve_info.solver == "osqp"
    local_wrench = contact.calc_local_wrench(wrench_dist.result_wrench_ratio)
    assert np.all(np.abs(local_wrench.vector()) <= max_wrench.vector() + 1e-2)
    assert local_wrench.force[2] == pytest.approx(100.0, abs=1e-1)
    assert np.all(wrench_dist.result_wrench_ratio >= -1e-6)


def test_max_wrench_bound_not_enforced_without_bound():
    """Without a bound, the same scenario exceeds it."""
    from forcecoll import Wrench, WrenchDistribution

    max_wrench = Wrench([2.0, 2.0, 2.0], [10.0, 10.0, 100.0])
    contact = _square_foot()
    desired = Wrench([0.0, 0.0, 0.0], [0.0, 0.0, 500.0])
    wrench_dist = WrenchDistribution([contact])
    wrench_dist.run(desired)

    local_wrench = contact.calc_local_wrench(wrench_dist.result_wrench_ratio)
    assert local_wrench.force[2] == pytest.approx(500.0, abs=1e-2)
    assert np.any(np.abs(local_wrench.vector()) > max_wrench.vector())


def test_inequality_rows_use_local_grasp_matrix():
    """Bound rows are [-L; L] for bounded contacts only, with stale rows cleared."""
    from forcecoll import Pose, Wrench, WrenchDistribution

    left_foot = _left_foot()
    right_foot = _right_foot()
    right_foot.update_global_vertices(Pose.from_translation([0.0, -0.5, 0.0]))
    contact_list = [left_foot, right_foot]
    bound = Wrench([5.0, 5.0, 5.0], [50.0, 50.0, 400.0])
    desired = Wrench([0.0, 0.0, 0.0], [0.0, 0.0, 300.0])

    solver = _RecordingSolver()
    wrench_dist = WrenchDistribution(contact_list, qp_solver=solver)

    left_foot.max_wrench = bound
    wrench_dist.run(desired, np.array([0.0, 0.0, 0.2]))
    call = solver.calls[-1]
    assert call['ineq_mat'].shape == (12, 16)
    np.testing.assert_allclose(call['ineq_mat'][:6, :12], -left_foot.local_grasp_mat)
    np.testing.assert_allclose(call['ineq_mat'][6:, :12], left_foot.local_grasp_mat)
    np.testing.assert_allclose(call['ineq_mat'][:, 12:], np.zeros((12, 4)))
    np.testing.assert_allclose(call['ineq_vec'], np.concatenate([bound.vector(), bound.vector()]))

    # Move the bound to the other contact; same row count, so buffers are reused
    left_foot.max_wrench = None
    right_foot.max_wrench = bound
    wrench_dist.run(desired)
    call = solver.calls[-1]
    assert call['ineq_mat'].shape == (12, 16)
    np.testing.assert_allclose(call['ineq_mat'][:, :12], np.zeros((12, 12)))
    np.testing.assert_allclose(call['ineq_mat'][:6, 12:], -right_foot.local_grasp_mat)

    # Drop all bounds
    right_foot.max_wrench = None
    wrench_dist.run(desired)
    assert solver.calls[-1]['ineq_mat'].shape == (0, 16)


def test_contact_set_change_resizes_result():
    """Adding a contact to the shared list resizes the ridge force vector."""
    from forcecoll import EmptyContact, WrenchDistribution

    contact_list = [_left_foot(), EmptyContact("RightFootContact")]
    wrench_dist = WrenchDistribution(contact_list)
    desired = _desired_wrench()

    wrench_dist.run(desired)
    assert wrench_dist.result_wrench_ratio.shape == (12,)

    contact_list[1] = _right_foot()
    result = wrench_dist.run(desired)
    assert wrench_dist.result_wrench_ratio.shape == (16,)
    assert np.linalg.norm((desired - result).vector()) < 1e-2

    markers = wrench_dist.marker_list()
    # 3 vertices (arrow + pyramid) + polygon, 1 vertex (arrow + pyramid) + polygon
    assert len(markers) == 7 + 3


def test_backend_error_leaves_state_untouched():
    """An exception from the backend propagates before results are stored."""
    from forcecoll import WrenchDistribution

    wrench_dist = WrenchDistribution([_left_foot()], qp_solver=_FailingSolver())
    with pytest.raises(AssertionError):
        wrench_dist.run(_desired_wrench())

    assert wrench_dist.state == "ready"
    np.testing.assert_array_equal(wrench_dist.result_wrench_ratio, np.zeros(12))
    np.testing.assert_array_equal(wrench_dist.desired_total_wrench.vector(), np.zeros(6))


def test_infeasible_result_is_surfaced():
    """A non-converged solve is stored as-is and reported."""
    from forcecoll import QpResult, WrenchDistribution

    class _NotConverged:
        name = "stub"

        def solve(self, coeff):
            return QpResult(x=np.full(coeff.dim_var, -1.0), status="primal infeasible",
                            converged=False, solver=self.name)

    contact = _left_foot()
    wrench_dist = WrenchDistribution([contact], qp_solver=_NotConverged())
    result = wrench_dist.run(_desired_wrench())

    assert wrench_dist.state == "infeasible"
    np.testing.assert_array_equal(wrench_dist.result_wrench_ratio, np.full(12, -1.0))
    np.testing.assert_allclose(result.vector(), contact.grasp_mat @ np.full(12, -1.0))


def test_config_validation():
    """Invalid configuration values are rejected."""
    from forcecoll import WrenchDistributionConfig

    with pytest.raises(ValueError):
        WrenchDistributionConfig(regular_weight=-1.0)
    with pytest.raises(ValueError):
        WrenchDistributionConfig(ridge_force_min_max=(1.0, 0.0))
    WrenchDistributionConfig(ridge_force_min_max=(2.0, 2.0))
    with pytest.raises(ValueError):
        WrenchDistributionConfig(qp_solver_type="qld")

    config = WrenchDistributionConfig.from_dict({
        'wrenchWeight': {'couple': [1.0, 1.0, 1.0], 'force': [2.0, 2.0, 2.0]},
        'regularWeight': 1e-6,
        'ridgeForceMinMax': [0.0, 1000.0],
        'qpSolverType': 'OSQP',
    })
    np.testing.assert_allclose(config.wrench_weight.vector(), [1, 1, 1, 2, 2, 2])
    assert config.regular_weight == 1e-6
    assert config.ridge_force_min_max == (0.0, 1000.0)
    assert config.qp_solver_type == "osqp"
    assert config.to_dict()['qp_solver_type'] == "osqp"


def test_infeasible_bound_with_osqp():
    """An infeasible bounded problem is surfaced as-is by the OSQP backend."""
    import warnings
    from forcecoll import Wrench, WrenchDistribution, WrenchDistributionConfig

    contact = _left_foot()
    contact.max_wrench = Wrench(np.full(3, 0.01), np.full(3, 0.01))
    config = WrenchDistributionConfig(ridge_force_min_max=(1.0, 1e10))
    wrench_dist = WrenchDistribution([contact], config)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        wrench_dist.run(_desired_wrench())

    assert not [w for w in caught if "raise_error" in str(w.message)]
    assert wrench_dist.state == "infeasible"
    assert wrench_dist.last_solve_info.solver == "osqp"
    assert not wrench_dist.last_solve_info.converged
    assert wrench_dist.result_wrench_ratio.shape == (12,)


def test_equal_ridge_force_bounds():
    """min == max fixes every ridge force."""
    from forcecoll import Wrench, WrenchDistribution, WrenchDistributionConfig

    config = WrenchDistributionConfig(ridge_force_min_max=(5.0, 5.0))
    wrench_dist = WrenchDistribution([_left_foot(), _right_foot()], config)
    wrench_dist.run(_desired_wrench())
    assert wrench_dist.state == "solved"
    np.testing.assert_allclose(wrench_dist.result_wrench_ratio, np.full(16, 5.0))

    config = WrenchDistributionConfig(ridge_force_min_max=(5.0, 5.0), qp_solver_type="osqp")
    left_foot = _left_foot()
    left_foot.max_wrench = Wrench(np.full(3, 1e3), np.full(3, 1e3))
    wrench_dist = WrenchDistribution([left_foot], config)
    wrench_dist.run(_desired_wrench())
    np.testing.assert_allclose(wrench_dist.result_wrench_ratio, np.full(12, 5.0), atol=1e-5)


def test_bound_moves_between_contacts():
    """Moving a bound to another contact reuses the OSQP workspace and its rows follow."""
    from forcecoll import Wrench, WrenchDistribution

    max_wrench = Wrench([50.0, 50.0, 50.0], [100.0, 100.0, 100.0])
    left_foot = _left_foot()
    right_foot = _right_foot()
    left_foot.max_wrench = max_wrench
    wrench_dist = WrenchDistribution([left_foot, right_foot])
    desired = _desired_wrench()

    wrench_dist.run(desired)
    assert wrench_dist.last_solve_info.solver == "osqp"
    workspace = wrench_dist.qp_solver.osqp.solver
    left_local = left_foot.calc_local_wrench(wrench_dist.result_wrench_ratio[:12])
    assert np.all(np.abs(left_local.vector()) <= max_wrench.vector() + 1e-2)

    left_foot.max_wrench = None
    right_foot.max_wrench = max_wrench
    result = wrench_dist.run(desired)

    assert wrench_dist.qp_solver.osqp.solver is workspace
    assert wrench_dist.state == "solved"
    assert np.linalg.norm((desired - result).vector()) < 1e-2
    right_local = right_foot.calc_local_wrench(wrench_dist.result_wrench_ratio[12:])
    assert np.all(np.abs(right_local.vector()) <= max_wrench.vector() + 1e-2)
    left_local = left_foot.calc_local_wrench(wrench_dist.result_wrench_ratio[:12])
    assert left_local.force[2] > 100.0
