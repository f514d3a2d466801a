"""
I/O utilities for loading pipeline configuration files.
"""

import logging
from pathlib import Path
from typing import Dict, Union

import yaml

logger = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> Dict:
    """
    Loads pipeline configuration from a YAML file.

    Args:
        config_path (str | Path): Path to the YAML configuration file.

    Returns:
        Dict: The loaded configuration (empty dict for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the top-level YAML node is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found at {path}.")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(
            f"Config file {path} must contain a mapping, got {type(config).__name__}."
        )

    logger.debug(f"Config loaded from: {path}")
    return config
