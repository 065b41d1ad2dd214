"""Differentiable expression trees over scalar unknowns.

Every node supports numeric evaluation against the live values of the
unknowns it references and symbolic partial differentiation with respect
to a :class:`~sketchgcs.variables.Variable`.  Nodes are immutable: a
derivative is a fresh tree that may reference (but never mutates) the
subtrees of its source.

The module-level helpers :func:`add`, :func:`sub`, :func:`mul`, :func:`div`
and :func:`neg` fold constant zeros and ones, so differentiating with
respect to an unknown that does not occur in a subtree yields
``Constant(0.0)`` rather than a tree of zero-valued products.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Iterator, List, Union

from .variables import Variable

Operand = Union["Expression", Variable, float, int]


class Expression:
    """Base class for expression nodes."""

    def evaluate(self) -> float:  # pragma: no cover - abstract
        raise NotImplementedError

    def differentiate(self, variable: Variable) -> "Expression":  # pragma: no cover - abstract
        raise NotImplementedError

    def children(self) -> tuple:
        return ()

    def variables(self) -> List[Variable]:
        """Return the distinct unknowns referenced, in first-seen order."""

        seen = {}
        for node in self.walk():
            if isinstance(node, VariableRef) and node.variable not in seen:
                seen[node.variable] = None
        return list(seen)

    def walk(self) -> Iterator["Expression"]:
        stack: List[Expression] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children()))

    def __float__(self) -> float:
        return self.evaluate()

    def __add__(self, other: Operand) -> "Expression":
        return add(self, as_expression(other))

    def __radd__(self, other: Operand) -> "Expression":
        return add(as_expression(other), self)

    def __sub__(self, other: Operand) -> "Expression":
        return sub(self, as_expression(other))

    def __rsub__(self, other: Operand) -> "Expression":
        return sub(as_expression(other), self)

    def __mul__(self, other: Operand) -> "Expression":
        return mul(self, as_expression(other))

    def __rmul__(self, other: Operand) -> "Expression":
        return mul(as_expression(other), self)

    def __truediv__(self, other: Operand) -> "Expression":
        return div(self, as_expression(other))

    def __rtruediv__(self, other: Operand) -> "Expression":
        return div(as_expression(other), self)

    def __neg__(self) -> "Expression":
        return neg(self)


@dataclass(frozen=True, eq=False)
class Constant(Expression):
    value: float

    def evaluate(self) -> float:
        return float(self.value)

    def differentiate(self, variable: Variable) -> Expression:
        return ZERO

    def __str__(self) -> str:
        return f"{self.value:g}"


ZERO = Constant(0.0)
ONE = Constant(1.0)


@dataclass(frozen=True, eq=False)
class VariableRef(Expression):
    variable: Variable

    def evaluate(self) -> float:
        return self.variable.value

    def differentiate(self, variable: Variable) -> Expression:
        return ONE if variable == self.variable else ZERO

    def __str__(self) -> str:
        return self.variable.name


@dataclass(frozen=True, eq=False)
class Negate(Expression):
    operand: Expression

    def evaluate(self) -> float:
        return -self.operand.evaluate()

    def differentiate(self, variable: Variable) -> Expression:
        return neg(self.operand.differentiate(variable))

    def children(self) -> tuple:
        return (self.operand,)

    def __str__(self) -> str:
        return f"-({self.operand})"


@dataclass(frozen=True, eq=False)
class Sqrt(Expression):
    operand: Expression

    def evaluate(self) -> float:
        return math.sqrt(self.operand.evaluate())

    def differentiate(self, variable: Variable) -> Expression:
        # d sqrt(u) = du / (2 sqrt(u))
        return div(self.operand.differentiate(variable), mul(Constant(2.0), self))

    def children(self) -> tuple:
        return (self.operand,)

    def __str__(self) -> str:
        return f"sqrt({self.operand})"


@dataclass(frozen=True, eq=False)
class _Binary(Expression):
    left: Expression
    right: Expression

    symbol = "?"

    def children(self) -> tuple:
        return (self.left, self.right)

    def __str__(self) -> str:
        return f"({self.left} {self.symbol} {self.right})"


class Add(_Binary):
    symbol = "+"

    def evaluate(self) -> float:
        return self.left.evaluate() + self.right.evaluate()

    def differentiate(self, variable: Variable) -> Expression:
        return add(self.left.differentiate(variable), self.right.differentiate(variable))


class Subtract(_Binary):
    symbol = "-"

    def evaluate(self) -> float:
        return self.left.evaluate() - self.right.evaluate()

    def differentiate(self, variable: Variable) -> Expression:
        return sub(self.left.differentiate(variable), self.right.differentiate(variable))


class Multiply(_Binary):
    symbol = "*"

    def evaluate(self) -> float:
        return self.left.evaluate() * self.right.evaluate()

    def differentiate(self, variable: Variable) -> Expression:
        return add(
            mul(self.left.differentiate(variable), self.right),
            mul(self.left, self.right.differentiate(variable)),
        )


class Divide(_Binary):
    """Quotient node; ``0 / 0`` evaluates to ``0.0``.

    The only zero-over-zero quotients built by this package come from
    derivatives of a norm at its root, where the one-sided limit along
    every coordinate axis is zero.  Any other division by zero raises
    :class:`ZeroDivisionError`.
    """

    symbol = "/"

    def evaluate(self) -> float:
        numerator = self.left.evaluate()
        denominator = self.right.evaluate()
        if denominator == 0.0 and numerator == 0.0:
            return 0.0
        return numerator / denominator

    def differentiate(self, variable: Variable) -> Expression:
        d_num = self.left.differentiate(variable)
        d_den = self.right.differentiate(variable)
        if _is_zero(d_den):
            return div(d_num, self.right)
        return div(
            sub(mul(d_num, self.right), mul(self.left, d_den)),
            mul(self.right, self.right),
        )


class ArcTan2(_Binary):
    """``atan2(left, right)`` with ``left`` as the ordinate."""

    def evaluate(self) -> float:
        return math.atan2(self.left.evaluate(), self.right.evaluate())

    def differentiate(self, variable: Variable) -> Expression:
        y, x = self.left, self.right
        dy = y.differentiate(variable)
        dx = x.differentiate(variable)
        if _is_zero(dy) and _is_zero(dx):
            return ZERO
        return div(sub(mul(x, dy), mul(y, dx)), add(mul(x, x), mul(y, y)))

    def __str__(self) -> str:
        return f"atan2({self.left}, {self.right})"


@dataclass(frozen=True, eq=False)
class Select(Expression):
    """Piecewise node: ``if_ge`` when ``left >= right`` else ``if_lt``."""

    left: Expression
    right: Expression
    if_ge: Expression
    if_lt: Expression

    def evaluate(self) -> float:
        if self.left.evaluate() >= self.right.evaluate():
            return self.if_ge.evaluate()
        return self.if_lt.evaluate()

    def differentiate(self, variable: Variable) -> Expression:
        d_ge = self.if_ge.differentiate(variable)
        d_lt = self.if_lt.differentiate(variable)
        if _is_zero(d_ge) and _is_zero(d_lt):
            return ZERO
        return Select(self.left, self.right, d_ge, d_lt)

    def children(self) -> tuple:
        return (self.left, self.right, self.if_ge, self.if_lt)

    def __str__(self) -> str:
        return f"({self.if_ge} if {self.left} >= {self.right} else {self.if_lt})"


def _is_zero(expr: Expression) -> bool:
    return isinstance(expr, Constant) and expr.value == 0.0


def _is_one(expr: Expression) -> bool:
    return isinstance(expr, Constant) and expr.value == 1.0


def as_expression(value: Operand) -> Expression:
    if isinstance(value, Expression):
        return value
    if isinstance(value, Variable):
        return VariableRef(value)
    if isinstance(value, numbers.Real):
        return Constant(float(value))
    raise TypeError(f"cannot build an expression from {type(value).__name__}")


def add(left: Expression, right: Expression) -> Expression:
    if _is_zero(left):
        return right
    if _is_zero(right):
        return left
    if isinstance(left, Constant) and isinstance(right, Constant):
        return Constant(left.value + right.value)
    return Add(left, right)


def sub(left: Expression, right: Expression) -> Expression:
    if _is_zero(right):
        return left
    if _is_zero(left):
        return neg(right)
    if isinstance(left, Constant) and isinstance(right, Constant):
        return Constant(left.value - right.value)
    return Subtract(left, right)


def mul(left: Expression, right: Expression) -> Expression:
    if _is_zero(left) or _is_zero(right):
        return ZERO
    if _is_one(left):
        return right
    if _is_one(right):
        return left
    if isinstance(left, Constant) and isinstance(right, Constant):
        return Constant(left.value * right.value)
    return Multiply(left, right)


def div(left: Expression, right: Expression) -> Expression:
    if _is_zero(left):
        return ZERO
    if _is_one(right):
        return left
    return Divide(left, right)


def neg(operand: Expression) -> Expression:
    if isinstance(operand, Constant):
        return Constant(-operand.value)
    if isinstance(operand, Negate):
        return operand.operand
    return Negate(operand)


def sqrt(operand: Operand) -> Expression:
    return Sqrt(as_expression(operand))


def atan2(y: Operand, x: Operand) -> Expression:
    return ArcTan2(as_expression(y), as_expression(x))


def absolute(operand: Operand) -> Expression:
    expr = as_expression(operand)
    return Select(expr, ZERO, expr, neg(expr))


def maximum(a: Operand, b: Operand) -> Expression:
    left, right = as_expression(a), as_expression(b)
    return Select(left, right, left, right)


def minimum(a: Operand, b: Operand) -> Expression:
    left, right = as_expression(a), as_expression(b)
    return Select(left, right, right, left)


def clamp(operand: Operand, lower: float, upper: float) -> Expression:
    """Restrict ``operand`` to ``[lower, upper]``; flat (zero slope) outside."""

    if lower > upper:
        raise ValueError(f"empty clamp interval [{lower}, {upper}]")
    return minimum(maximum(operand, lower), upper)


def square(operand: Operand) -> Expression:
    expr = as_expression(operand)
    return mul(expr, expr)


def norm2(dx: Operand, dy: Operand) -> Expression:
    """Euclidean length of the 2-D vector ``(dx, dy)``."""

    return sqrt(add(square(dx), square(dy)))


def cross2(ax: Operand, ay: Operand, bx: Operand, by: Operand) -> Expression:
    return sub(
        mul(as_expression(ax), as_expression(by)),
        mul(as_expression(ay), as_expression(bx)),
    )


def dot2(ax: Operand, ay: Operand, bx: Operand, by: Operand) -> Expression:
    return add(
        mul(as_expression(ax), as_expression(bx)),
        mul(as_expression(ay), as_expression(by)),
    )


__all__ = [
    "Add",
    "ArcTan2",
    "Constant",
    "Divide",
    "Expression",
    "Multiply",
    "Negate",
    "ONE",
    "Operand",
    "Select",
    "Sqrt",
    "Subtract",
    "VariableRef",
    "ZERO",
    "absolute",
    "add",
    "as_expression",
    "atan2",
    "clamp",
    "cross2",
    "div",
    "dot2",
    "maximum",
    "minimum",
    "mul",
    "neg",
    "norm2",
    "sqrt",
    "square",
    "sub",
]
