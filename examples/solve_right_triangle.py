"""Example loop: drive Gauss-Newton steps over a small sketch by hand."""

import math

from sketchgcs import (
    ConstraintSystem,
    ParameterVector,
    PointPointDistanceError,
    SectionSectionAngleError,
    point_on_section,
)

MAX_ITERATIONS = 30
TOLERANCE = 1e-10


def main() -> None:
    params = ParameterVector()
    bx, by = params.point(3.5, 0.4, "B")
    cx, cy = params.point(0.3, 2.6, "C")
    mx, my = params.point(1.0, 1.0, "M")

    # A is pinned at the origin
    system = ConstraintSystem(
        params,
        [
            PointPointDistanceError([0.0, 0.0, bx, by], 4.0),
            PointPointDistanceError([0.0, 0.0, cx, cy], 3.0),
            SectionSectionAngleError([0.0, 0.0, bx, by, 0.0, 0.0, cx, cy], math.pi / 2),
            SectionSectionAngleError([0.0, 0.0, 1.0, 0.0, 0.0, 0.0, bx, by], 0.0),
            point_on_section([mx, my, bx, by, cx, cy]),
            PointPointDistanceError([bx, by, mx, my], 2.5),
        ],
    )

    for iteration in range(MAX_ITERATIONS):
        linearized = system.linearize()
        print(f"iter {iteration:2d}: max |r| = {linearized.max_residual:.3e}")
        if linearized.max_residual < TOLERANCE:
            break
        params.apply_step(system.correction("householder"))

    for variable in params:
        print(f"{variable.name}: {variable.value:.6f}")
    print(f"|BC| = {math.hypot(bx.value - cx.value, by.value - cy.value):.6f}")


if __name__ == "__main__":
    main()
