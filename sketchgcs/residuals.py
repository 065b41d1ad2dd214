"""Constraint residuals for 2-D sketch geometry.

Each residual packages one geometric relationship into a scalar expression
that evaluates to zero exactly when the relationship holds.  Operands are
passed as a flat coordinate list (points as ``x, y``; circles as
``cx, cy, r``) whose entries are either :class:`Variable` handles or plain
numbers for fixed coordinates.
"""

from __future__ import annotations

import logging
import math
import numbers
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .expressions import (
    Expression,
    add,
    as_expression,
    atan2,
    clamp,
    cross2,
    div,
    dot2,
    maximum,
    mul,
    norm2,
    sub,
)
from .model import ResidualConstructionError
from .variables import Variable

logger = logging.getLogger(__name__)

Coordinate = Union[Variable, float]


class ConstraintKind(Enum):
    POINT_SECTION_DISTANCE = "point_section_distance"
    POINT_ON_SECTION = "point_on_section"
    POINT_POINT_DISTANCE = "point_point_distance"
    POINT_ON_POINT = "point_on_point"
    SECTION_CIRCLE_DISTANCE = "section_circle_distance"
    SECTION_ON_CIRCLE = "section_on_circle"
    SECTION_IN_CIRCLE = "section_in_circle"
    SECTION_SECTION_PARALLEL = "section_section_parallel"
    SECTION_SECTION_PERPENDICULAR = "section_section_perpendicular"
    SECTION_SECTION_ANGLE = "section_section_angle"
    POINT_CIRCLE_DISTANCE = "point_circle_distance"
    POINT_ON_CIRCLE = "point_on_circle"


class ErrorFunction:
    """Base class for constraint residuals.

    Subclasses set :attr:`kind` and :attr:`arity` and implement
    :meth:`_build`, which receives the operands already wrapped as
    expressions and returns the residual tree.
    """

    kind: ConstraintKind
    arity: int = 0
    takes_target: bool = True

    def __init__(
        self, x: Sequence[Coordinate], error: float = 0.0, *, kind: Optional[ConstraintKind] = None
    ):
        if kind is not None:
            self.kind = kind
        operands = tuple(x)
        if len(operands) != self.arity:
            raise ResidualConstructionError(
                self.kind,
                f"{type(self).__name__} expects {self.arity} coordinates, got {len(operands)}",
            )
        for item in operands:
            if not isinstance(item, (Variable, numbers.Real)):
                raise ResidualConstructionError(
                    self.kind,
                    f"{type(self).__name__} coordinates must be variables or numbers, "
                    f"got {type(item).__name__}",
                )
        if not isinstance(error, numbers.Real):
            raise ResidualConstructionError(self.kind, f"target must be a number, got {error!r}")
        if error and not self.takes_target:
            raise ResidualConstructionError(self.kind, f"{type(self).__name__} does not take a target value")

        self._operands: Tuple[Coordinate, ...] = operands
        self.error = float(error)
        seen: Dict[Variable, None] = {}
        for item in operands:
            if isinstance(item, Variable):
                seen.setdefault(item, None)
        self._variables: List[Variable] = list(seen)
        self._expression = self._build([as_expression(item) for item in operands], self.error)

    def _build(self, terms: List[Expression], error: float) -> Expression:  # pragma: no cover - abstract
        raise NotImplementedError

    @property
    def expression(self) -> Expression:
        return self._expression

    @property
    def operands(self) -> Tuple[Coordinate, ...]:
        return self._operands

    def get_variables(self) -> List[Variable]:
        return list(self._variables)

    def evaluate(self) -> float:
        return self._expression.evaluate()

    def derivative(self, variable: Variable) -> Expression:
        return self._expression.differentiate(variable)

    def gradient(self) -> Dict[Variable, float]:
        """Evaluated partial derivatives keyed by dependency."""

        return {var: self.derivative(var).evaluate() for var in self._variables}

    def describe(self) -> str:
        parts = [self.kind.value]
        if self._variables:
            parts.append("vars=" + ",".join(var.name for var in self._variables))
        if self.error:
            parts.append(f"target={self.error:.6g}")
        return " | ".join(parts)

    def clone(self) -> "ErrorFunction":
        raise NotImplementedError(f"{type(self).__name__} cannot be cloned")

    def __copy__(self):
        raise NotImplementedError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise NotImplementedError(f"{type(self).__name__} cannot be copied")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()})"


def _point_segment_distance(px, py, ax, ay, bx, by) -> Expression:
    # Project P onto AB, keep the foot inside the segment, measure to the foot.
    abx, aby = sub(bx, ax), sub(by, ay)
    apx, apy = sub(px, ax), sub(py, ay)
    t = clamp(div(dot2(apx, apy, abx, aby), dot2(abx, aby, abx, aby)), 0.0, 1.0)
    return norm2(sub(apx, t * abx), sub(apy, t * aby))


class PointPointDistanceError(ErrorFunction):
    """``|P2 - P1| - d`` over ``x1, y1, x2, y2``."""

    kind = ConstraintKind.POINT_POINT_DISTANCE
    arity = 4

    def _build(self, terms, error):
        x1, y1, x2, y2 = terms
        return norm2(sub(x2, x1), sub(y2, y1)) - error


class PointSectionDistanceError(ErrorFunction):
    """Distance from ``P`` to segment ``AB`` minus ``d`` over ``px, py, ax, ay, bx, by``."""

    kind = ConstraintKind.POINT_SECTION_DISTANCE
    arity = 6

    def _build(self, terms, error):
        return _point_segment_distance(*terms) - error


class SectionCircleDistanceError(ErrorFunction):
    """Signed gap between segment ``AB`` and circle ``(C, r)`` minus ``d``.

    Operands are ``ax, ay, bx, by, cx, cy, r``.  The gap is negative when
    the segment passes inside the circle.
    """

    kind = ConstraintKind.SECTION_CIRCLE_DISTANCE
    arity = 7

    def _build(self, terms, error):
        ax, ay, bx, by, cx, cy, r = terms
        return _point_segment_distance(cx, cy, ax, ay, bx, by) - r - error


class SectionInCircleError(ErrorFunction):
    """Farthest endpoint distance from the center minus the radius."""

    kind = ConstraintKind.SECTION_IN_CIRCLE
    arity = 7
    takes_target = False

    def _build(self, terms, error):
        ax, ay, bx, by, cx, cy, r = terms
        return maximum(norm2(sub(ax, cx), sub(ay, cy)), norm2(sub(bx, cx), sub(by, cy))) - r


def _directions(terms):
    x1, y1, x2, y2, x3, y3, x4, y4 = terms
    return sub(x2, x1), sub(y2, y1), sub(x4, x3), sub(y4, y3)


class SectionSectionParallelError(ErrorFunction):
    """Cross product of the two segment directions."""

    kind = ConstraintKind.SECTION_SECTION_PARALLEL
    arity = 8
    takes_target = False

    def _build(self, terms, error):
        return cross2(*_directions(terms))


class SectionSectionPerpendicularError(ErrorFunction):
    """Dot product of the two segment directions."""

    kind = ConstraintKind.SECTION_SECTION_PERPENDICULAR
    arity = 8
    takes_target = False

    def _build(self, terms, error):
        return dot2(*_directions(terms))


class SectionSectionAngleError(ErrorFunction):
    """Signed angle from the first direction to the second, minus ``theta``.

    The angle is measured counter-clockwise in radians.  The target is
    rotated into the ``atan2`` arguments, so the difference stays in
    ``(-pi, pi]`` and is continuous around the target.
    """

    kind = ConstraintKind.SECTION_SECTION_ANGLE
    arity = 8

    def _build(self, terms, error):
        d = _directions(terms)
        cross, dot = cross2(*d), dot2(*d)
        cos_t, sin_t = as_expression(math.cos(error)), as_expression(math.sin(error))
        return atan2(sub(mul(cross, cos_t), mul(dot, sin_t)), add(mul(dot, cos_t), mul(cross, sin_t)))


class PointCircleDistanceError(ErrorFunction):
    """``|P - C| - r - d`` over ``px, py, cx, cy, r``."""

    kind = ConstraintKind.POINT_CIRCLE_DISTANCE
    arity = 5

    def _build(self, terms, error):
        px, py, cx, cy, r = terms
        return norm2(sub(px, cx), sub(py, cy)) - r - error


def point_on_point(x: Sequence[Coordinate]) -> PointPointDistanceError:
    return PointPointDistanceError(x, 0.0, kind=ConstraintKind.POINT_ON_POINT)


def point_on_section(x: Sequence[Coordinate]) -> PointSectionDistanceError:
    return PointSectionDistanceError(x, 0.0, kind=ConstraintKind.POINT_ON_SECTION)


def section_on_circle(x: Sequence[Coordinate]) -> SectionCircleDistanceError:
    return SectionCircleDistanceError(x, 0.0, kind=ConstraintKind.SECTION_ON_CIRCLE)


def point_on_circle(x: Sequence[Coordinate]) -> PointCircleDistanceError:
    return PointCircleDistanceError(x, 0.0, kind=ConstraintKind.POINT_ON_CIRCLE)


_TARGETED: Dict[ConstraintKind, Callable[..., ErrorFunction]] = {
    ConstraintKind.POINT_SECTION_DISTANCE: PointSectionDistanceError,
    ConstraintKind.POINT_POINT_DISTANCE: PointPointDistanceError,
    ConstraintKind.SECTION_CIRCLE_DISTANCE: SectionCircleDistanceError,
    ConstraintKind.SECTION_SECTION_ANGLE: SectionSectionAngleError,
    ConstraintKind.POINT_CIRCLE_DISTANCE: PointCircleDistanceError,
}

_UNTARGETED: Dict[ConstraintKind, Callable[[Sequence[Coordinate]], ErrorFunction]] = {
    ConstraintKind.POINT_ON_SECTION: point_on_section,
    ConstraintKind.POINT_ON_POINT: point_on_point,
    ConstraintKind.SECTION_ON_CIRCLE: section_on_circle,
    ConstraintKind.POINT_ON_CIRCLE: point_on_circle,
    ConstraintKind.SECTION_IN_CIRCLE: SectionInCircleError,
    ConstraintKind.SECTION_SECTION_PARALLEL: SectionSectionParallelError,
    ConstraintKind.SECTION_SECTION_PERPENDICULAR: SectionSectionPerpendicularError,
}


def make_residual(kind: Union[ConstraintKind, str], x: Sequence[Coordinate], error: float = 0.0) -> ErrorFunction:
    """Build the residual registered for ``kind``."""

    try:
        kind = ConstraintKind(kind)
    except ValueError as exc:
        raise ResidualConstructionError(kind, f"unknown constraint kind {kind!r}") from exc

    if kind in _TARGETED:
        residual = _TARGETED[kind](x, error)
    else:
        if error:
            raise ResidualConstructionError(kind, f"{kind.value} does not take a target value")
        residual = _UNTARGETED[kind](x)
    logger.debug("Built residual %s", residual.describe())
    return residual


__all__ = [
    "ConstraintKind",
    "Coordinate",
    "ErrorFunction",
    "PointCircleDistanceError",
    "PointPointDistanceError",
    "PointSectionDistanceError",
    "SectionCircleDistanceError",
    "SectionInCircleError",
    "SectionSectionAngleError",
    "SectionSectionParallelError",
    "SectionSectionPerpendicularError",
    "make_residual",
    "point_on_circle",
    "point_on_point",
    "point_on_section",
    "section_on_circle",
]
