"""Configuration helpers for the numeric components."""

from __future__ import annotations

import copy

from .model import NumericConfig

_NUMERIC_CONFIG = NumericConfig()


def _validate(config: NumericConfig) -> None:
    if config.rank_tolerance < 0.0:
        raise ValueError(f"rank_tolerance must be non-negative, got {config.rank_tolerance}")
    if config.regularization < 0.0:
        raise ValueError(f"regularization must be non-negative, got {config.regularization}")
    if int(config.block_size) < 1:
        raise ValueError(f"block_size must be at least 1, got {config.block_size}")
    if not isinstance(config.default_method, str) or not config.default_method:
        raise ValueError("default_method must be a non-empty strategy name")


def get_numeric_config() -> NumericConfig:
    return copy.deepcopy(_NUMERIC_CONFIG)


def set_numeric_config(config: NumericConfig) -> None:
    global _NUMERIC_CONFIG
    _validate(config)
    _NUMERIC_CONFIG = copy.deepcopy(config)
