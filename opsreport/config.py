import logging
from pathlib import Path
from typing import Dict, Any

import yaml


def setup_logging(log_level: str = "INFO"):
    """Sets up the root logger for the application."""
    logging.basicConfig(
        level=log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_config(path: Path) -> Dict[str, Any]:
    """
    Loads the YAML configuration file.

    Raises:
        FileNotFoundError: The file does not exist.
        yaml.YAMLError: The file is not valid YAML.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}
