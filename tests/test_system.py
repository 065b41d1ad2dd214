import logging

import numpy as np
import pytest

from sketchgcs import (
    ConstraintSystem,
    ParameterVector,
    PointPointDistanceError,
    SectionSectionPerpendicularError,
    point_on_circle,
    point_on_point,
)


def _two_circle_system(start=(1.0, 1.0)):
    params = ParameterVector()
    px, py = params.point(*start, "P")
    system = ConstraintSystem(
        params,
        [
            PointPointDistanceError([0.0, 0.0, px, py], 5.0),
            PointPointDistanceError([6.0, 0.0, px, py], 5.0),
        ],
    )
    return params, system


def test_jacobian_columns_follow_parameter_indices():
    params = ParameterVector()
    ax, ay = params.point(0.0, 0.0, "A")
    bx, by = params.point(3.0, 4.0, "B")
    unused = params.add(9.0, "unused")
    system = ConstraintSystem(params, [PointPointDistanceError([ax, ay, bx, by], 1.0)])

    J = system.jacobian()
    assert J.shape == (1, 5)
    np.testing.assert_allclose(J[0], [-0.6, -0.8, 0.6, 0.8, 0.0])
    np.testing.assert_allclose(system.evaluate(), [4.0])
    assert unused.index == 4


def test_linearize_reports_max_residual_and_labels():
    params, system = _two_circle_system()
    linearized = system.linearize()

    expected = [np.hypot(1.0, 1.0) - 5.0, np.hypot(5.0, 1.0) - 5.0]
    np.testing.assert_allclose(linearized.residuals, expected)
    assert linearized.max_residual == pytest.approx(max(abs(v) for v in expected))
    assert linearized.labels[0].startswith("point_point_distance")


def test_add_rejects_foreign_unknowns():
    params = ParameterVector()
    other = ParameterVector()
    x = [other.add(0.0), other.add(0.0), other.add(1.0), other.add(1.0)]
    system = ConstraintSystem(params)

    with pytest.raises(ValueError):
        system.add(point_on_point(x))


def test_empty_system_has_no_correction():
    params = ParameterVector()
    params.add(1.0)
    with pytest.raises(ValueError):
        ConstraintSystem(params).correction()


@pytest.mark.parametrize("method", ["cgs", "mgs", "householder", "givens", "cgsp"])
def test_gauss_newton_iteration_driven_by_caller_converges(method):
    params, system = _two_circle_system()

    for _ in range(20):
        params.apply_step(system.correction(method))
        if system.linearize().max_residual < 1e-12:
            break

    np.testing.assert_allclose(params.values(), [3.0, 4.0], atol=1e-9)


def test_pseudo_inverse_step_matches_solve_step_on_square_system():
    params, system = _two_circle_system(start=(2.0, 3.0))

    solved = system.correction()
    pinv = system.correction(use_pseudo_inverse=True)
    np.testing.assert_allclose(pinv, solved, atol=1e-6)


def test_underdetermined_sketch_step_zeroes_linearized_residual():
    params = ParameterVector()
    ax, ay = params.point(0.0, 0.0, "A")
    bx, by = params.point(2.0, 0.3, "B")
    cx, cy = params.point(0.2, 1.5, "C")
    system = ConstraintSystem(
        params,
        [
            SectionSectionPerpendicularError([ax, ay, bx, by, ax, ay, cx, cy]),
            point_on_circle([cx, cy, ax, ay, 2.0]),
        ],
    )

    linearized = system.linearize()
    step = system.correction()

    assert step.shape == (6,)
    np.testing.assert_allclose(linearized.jacobian @ step, -linearized.residuals, atol=1e-10)


def test_correction_logs_factorization_at_debug(caplog):
    params, system = _two_circle_system()

    with caplog.at_level(logging.DEBUG, logger="sketchgcs.system"):
        system.correction("mgs")

    messages = [record.getMessage() for record in caplog.records]
    assert any("QR method=mgs" in message for message in messages)
    assert any(message.startswith("Correction via mgs") for message in messages)


def test_correction_is_quiet_at_info(caplog):
    params, system = _two_circle_system()

    with caplog.at_level(logging.INFO, logger="sketchgcs"):
        system.correction("householder")

    assert [record for record in caplog.records if record.name.startswith("sketchgcs")] == []


def test_parameter_vector_round_trip_and_validation():
    params = ParameterVector()
    a = params.add(1.0, "a")
    params.add(2.0)

    assert params[1].name == "x1"
    assert params[-1] == params[1]
    assert a == params[0]
    params.set_values([5.0, 6.0])
    assert a.value == 5.0
    with pytest.raises(ValueError):
        params.set_values([1.0])
    with pytest.raises(IndexError):
        params[2]
