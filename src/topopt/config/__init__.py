"""Configuration management for topology optimization runs."""

from .settings import (
    TopOptConfig, MeshConfig, MaterialConfig, OptimizationConfig,
    ProjectionConfig, RestartConfig, LoggingConfig, FilterType,
    create_default_config, DEFAULT_CONFIG_PATH
)

__all__ = [
    "TopOptConfig", "MeshConfig", "MaterialConfig", "OptimizationConfig",
    "ProjectionConfig", "RestartConfig", "LoggingConfig", "FilterType",
    "create_default_config", "DEFAULT_CONFIG_PATH"
]
