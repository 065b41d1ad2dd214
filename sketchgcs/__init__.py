import logging

from .config import get_numeric_config, set_numeric_config
from .expressions import Constant, Expression, VariableRef, as_expression
from .linalg import QRDecomposition, QRMethod, back_substitution
from .model import (
    DecompositionStateError,
    LinearizedSystem,
    NumericConfig,
    ResidualConstructionError,
    UnsupportedStrategyError,
)
from .residuals import (
    ConstraintKind,
    ErrorFunction,
    PointCircleDistanceError,
    PointPointDistanceError,
    PointSectionDistanceError,
    SectionCircleDistanceError,
    SectionInCircleError,
    SectionSectionAngleError,
    SectionSectionParallelError,
    SectionSectionPerpendicularError,
    make_residual,
    point_on_circle,
    point_on_point,
    point_on_section,
    section_on_circle,
)
from .system import ConstraintSystem
from .variables import ParameterVector, Variable

if not logging.getLogger().handlers:  # pragma: no cover - depends on host application
    logging.basicConfig(level=logging.INFO)

__all__ = [
    'Constant',
    'ConstraintKind',
    'ConstraintSystem',
    'DecompositionStateError',
    'ErrorFunction',
    'Expression',
    'LinearizedSystem',
    'NumericConfig',
    'ParameterVector',
    'PointCircleDistanceError',
    'PointPointDistanceError',
    'PointSectionDistanceError',
    'QRDecomposition',
    'QRMethod',
    'ResidualConstructionError',
    'SectionCircleDistanceError',
    'SectionInCircleError',
    'SectionSectionAngleError',
    'SectionSectionParallelError',
    'SectionSectionPerpendicularError',
    'UnsupportedStrategyError',
    'Variable',
    'VariableRef',
    'as_expression',
    'back_substitution',
    'get_numeric_config',
    'make_residual',
    'point_on_circle',
    'point_on_point',
    'point_on_section',
    'section_on_circle',
    'set_numeric_config',
]
