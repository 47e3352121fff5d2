"""
Configuration for TrialFlow runs.

This module contains the engine configuration data class and JSON/CSV
helpers for loading experiments from files.
"""

from .engine_config import EngineConfig, configure_logging
from .config_io import (
    save_config,
    load_config,
    save_timeline,
    load_experiment,
    load_variables,
    export_variables,
)

__all__ = [
    'EngineConfig',
    'configure_logging',
    'save_config',
    'load_config',
    'save_timeline',
    'load_experiment',
    'load_variables',
    'export_variables',
]
