"""Dense linear algebra: QR factorization strategies and triangular solves."""

from .qr import QRDecomposition
from .strategies import STRATEGIES, QRMethod, get_strategy, resolve_method
from .triangular import back_substitution

__all__ = [
    "QRDecomposition",
    "QRMethod",
    "STRATEGIES",
    "back_substitution",
    "get_strategy",
    "resolve_method",
]
