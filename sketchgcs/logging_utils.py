from __future__ import annotations

import logging
import reprlib
from functools import wraps
from typing import Any, Callable, MutableMapping, Optional, Sequence, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_repr = reprlib.Repr()
_repr.maxother = 160
_repr.maxlist = 10
_repr.maxtuple = 10


def describe_matrix(value: np.ndarray, *, max_items: int = 6) -> str:
    """Short, bounded summary of an ndarray for log lines."""

    summary = [f"ndarray(shape={tuple(value.shape)}, dtype={value.dtype})"]
    size = int(value.size)
    if size == 0:
        return summary[0]
    if size <= max_items:
        summary.append(f"values={_repr.repr(np.round(value, 12).tolist())}")
    else:
        summary.append(f"min={float(value.min()):.6g}")
        summary.append(f"max={float(value.max()):.6g}")
    return ", ".join(summary)


def _safe_repr(value: Any, *, max_length: int = 400) -> str:
    if isinstance(value, np.ndarray):
        return describe_matrix(value)
    if isinstance(value, (list, tuple)) and len(value) > 5:
        head = ", ".join(_safe_repr(item) for item in value[:5])
        return f"[{head}, ... ({len(value)} items)]"
    try:
        rendered = _repr.repr(value)
    except Exception as exc:  # pragma: no cover - defensive
        rendered = f"<repr-error {exc!r}>"
    if len(rendered) > max_length:
        return rendered[:max_length] + "... (truncated)"
    return rendered


def _format_arguments(args: Sequence[Any], kwargs: MutableMapping[str, Any]) -> str:
    parts = []
    if args:
        parts.append("args=[" + ", ".join(_safe_repr(arg) for arg in args) + "]")
    if kwargs:
        parts.append(
            "kwargs={" + ", ".join(f"{key}={_safe_repr(value)}" for key, value in kwargs.items()) + "}"
        )
    return ", ".join(parts) if parts else "no-args"


def debug_log_call(
    logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True
) -> Callable[[F], F]:
    """Return a decorator that emits DEBUG logs on entry and exit."""

    def decorator(func: F) -> F:
        qualname = name or getattr(func, "__qualname__", getattr(func, "__name__", "<callable>"))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Entering %s (%s)", qualname, _format_arguments(args, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.exception("Exception in %s", qualname)
                raise
            if logger.isEnabledFor(logging.DEBUG):
                if log_result:
                    logger.debug("Exiting %s -> %s", qualname, _safe_repr(result))
                else:
                    logger.debug("Exiting %s", qualname)
            return result

        return cast(F, wrapper)

    return decorator


def log_factorization(logger: logging.Logger, qr, *, level: int = logging.DEBUG) -> None:
    """Report the factors of a decomposed :class:`QRDecomposition`.

    Numeric routines never log on their own; callers that want visibility
    into a factorization pass it here after the fact.
    """

    if not logger.isEnabledFor(level):
        return
    if not qr.is_decomposed:
        logger.log(level, "QR %s not decomposed yet", qr.shape)
        return
    R = qr.R
    diagonal = np.abs(np.diag(R))
    logger.log(
        level,
        "QR method=%s shape=%s rank=%d min|diag R|=%.3e max|diag R|=%.3e",
        qr.method.value,
        qr.shape,
        qr.rank(),
        float(diagonal.min()),
        float(diagonal.max()),
    )
    logger.log(level, "R: %s", describe_matrix(R))
    if qr.method is not None and np.any(qr.permutation != np.arange(qr.shape[1])):
        logger.log(level, "column permutation: %s", qr.permutation.tolist())


__all__ = ["debug_log_call", "describe_matrix", "log_factorization"]
