"""
Core module - configuration, logging, errors and the metadata probe.
"""

from mflow.core.config import Settings, load_config, save_config, get_env_config
from mflow.core.errors import (
    MflowError,
    EngineError,
    GraphCycleError,
    NodeNotFoundError,
    WorkflowError,
)
from mflow.core.logging import configure_logging, get_logger

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "get_env_config",
    "MflowError",
    "EngineError",
    "GraphCycleError",
    "NodeNotFoundError",
    "WorkflowError",
    "configure_logging",
    "get_logger",
]
