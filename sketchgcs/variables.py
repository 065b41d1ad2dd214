"""Scalar unknowns stored in a flat, externally owned parameter vector."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class ParameterVector:
    """Arena owning the current values of every unknown in a sketch.

    Unknowns are handed out as :class:`Variable` handles that refer back to
    their slot by index, so a handle stays valid for the lifetime of the
    arena regardless of how values are later overwritten.
    """

    def __init__(self) -> None:
        self._values: List[float] = []
        self._names: List[str] = []

    def add(self, value: float = 0.0, name: Optional[str] = None) -> "Variable":
        index = len(self._values)
        self._values.append(float(value))
        self._names.append(name if name is not None else f"x{index}")
        return Variable(self, index)

    def point(self, x: float, y: float, name: str) -> Tuple["Variable", "Variable"]:
        """Register the two coordinates of a point called ``name``."""

        return self.add(x, f"{name}.x"), self.add(y, f"{name}.y")

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator["Variable"]:
        for index in range(len(self._values)):
            yield Variable(self, index)

    def __getitem__(self, index: int) -> "Variable":
        if not -len(self._values) <= index < len(self._values):
            raise IndexError(f"parameter index {index} out of range for {len(self._values)} unknowns")
        return Variable(self, index % len(self._values))

    def name_of(self, index: int) -> str:
        return self._names[index]

    def value_of(self, index: int) -> float:
        return self._values[index]

    def assign(self, index: int, value: float) -> None:
        self._values[index] = float(value)

    def values(self) -> np.ndarray:
        return np.asarray(self._values, dtype=float)

    def set_values(self, values: Sequence[float]) -> None:
        arr = np.asarray(values, dtype=float).reshape(-1)
        if arr.size != len(self._values):
            raise ValueError(f"expected {len(self._values)} values, got {arr.size}")
        self._values = [float(v) for v in arr]

    def apply_step(self, delta: Sequence[float], scale: float = 1.0) -> None:
        """Add ``scale * delta`` to the current values."""

        step = np.asarray(delta, dtype=float).reshape(-1)
        if step.size != len(self._values):
            raise ValueError(f"step has {step.size} entries, expected {len(self._values)}")
        self.set_values(self.values() + scale * step)
        logger.debug("Applied step with norm %.6g (scale=%s)", float(np.linalg.norm(step)), scale)

    def __repr__(self) -> str:
        return f"ParameterVector(size={len(self._values)})"


@dataclass(frozen=True)
class Variable:
    """Stable handle to one unknown of a :class:`ParameterVector`."""

    store: ParameterVector = field(repr=False)
    index: int

    @property
    def name(self) -> str:
        return self.store.name_of(self.index)

    @property
    def value(self) -> float:
        return self.store.value_of(self.index)

    def set(self, value: float) -> None:
        self.store.assign(self.index, value)

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return self.name


__all__ = ["ParameterVector", "Variable"]
