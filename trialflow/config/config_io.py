"""
Configuration file I/O for engine settings and timeline descriptions.

JSON files hold either an engine configuration, a timeline description, or
both:

    {
      "config": {"name": "lexical_decision", "scheduler": "immediate"},
      "timeline": [{"stimulus": "welcome"}, {"timeline": [...], "timeline_variables": {"source": "words.csv"}}]
    }
"""

from typing import Any, Optional, Tuple
import json
import logging
import os

import pandas as pd

from trialflow.execution.node import TimelineNode, as_node
from trialflow.execution.variable_list import VariableList
from .engine_config import EngineConfig

logger = logging.getLogger(__name__)


def _write_json(data: Any, filepath: str):
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _read_json(filepath: str) -> Any:
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_config(config: EngineConfig, filepath: str):
    """
    Save engine configuration to a JSON file.

    Args:
        config: EngineConfig to save
        filepath: Destination path (parent directories are created)
    """
    _write_json({'config': config.to_dict()}, filepath)
    logger.info(f"Configuration saved to {filepath}")


def load_config(filepath: str) -> EngineConfig:
    """
    Load engine configuration from a JSON file.

    Accepts a file with a top-level 'config' object or a bare config object.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a value is invalid
    """
    data = _read_json(filepath)
    config = EngineConfig.from_dict(data.get('config', data))
    logger.info(f"Configuration loaded from {filepath}")
    return config


def save_timeline(timeline: TimelineNode, filepath: str, config: Optional[EngineConfig] = None):
    """
    Save a timeline description (and optionally its config) to JSON.

    Predicates and hooks are Python callables and are not written.
    """
    data = {'timeline': timeline.to_dict()}
    if config is not None:
        data['config'] = config.to_dict()
    _write_json(data, filepath)
    logger.info(f"Timeline saved to {filepath}")


def load_experiment(filepath: str) -> Tuple[Any, EngineConfig]:
    """
    Load a timeline description and its config from JSON.

    Returns:
        (description, config); config is the default when the file has none

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidNodeSpec: If the timeline description is malformed
        ValueError: If the file has no 'timeline' entry
    """
    data = _read_json(filepath)
    if 'timeline' not in data:
        raise ValueError(f"No 'timeline' entry in {filepath}")

    timeline = data['timeline']
    # Relative CSV sources are resolved against the JSON file's directory
    base = os.path.dirname(os.path.abspath(filepath))
    description = as_node(_resolve_sources(timeline, base))
    config = EngineConfig.from_dict(data.get('config', {}))
    logger.info(f"Experiment loaded from {filepath}")
    return description, config


def load_variables(csv_path: str, **read_csv_kwargs) -> VariableList:
    """Load timeline variable records from CSV."""
    return VariableList.from_csv(csv_path, **read_csv_kwargs)


def export_variables(variables: VariableList, csv_path: str):
    """Write timeline variable records to CSV."""
    pd.DataFrame(variables.records, columns=variables.get_columns()).to_csv(csv_path, index=False)
    logger.info(f"Exported {len(variables)} variable records to {csv_path}")


def _resolve_sources(node: Any, base: str) -> Any:
    if isinstance(node, list):
        return [_resolve_sources(child, base) for child in node]
    if not isinstance(node, dict) or 'timeline' not in node:
        return node

    node = dict(node)
    variables = node.get('timeline_variables')
    if isinstance(variables, dict) and variables.get('source'):
        source = variables['source']
        if not os.path.isabs(source):
            node['timeline_variables'] = dict(variables, source=os.path.join(base, source))
    node['timeline'] = _resolve_sources(node['timeline'], base)
    return node
