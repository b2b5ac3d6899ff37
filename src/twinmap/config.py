"""
Global Configuration and Safety Defaults.

Limits that protect the normalizers from self-referential model graphs, plus
the per-project settings file read by the CLI.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# --- Safety Limits ---
# Nested schemas deeper than this are treated as a cycle
MAX_SCHEMA_DEPTH = 32

# Inlined component/relationship chains deeper than this are rejected
MAX_MODEL_DEPTH = 64

# --- Tree rendering ---
# Placeholder rows appended after the last row while more pages exist
NUM_SHIMMER_ROWS = 5

DEFAULT_PAGE_SIZE = 100

CONFIG_DIR = ".twinmap"
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG = {
    "version": "1.0",
    "tree": {
        "select_descendants_with_parent": True,
        "start_collapsed": False,
        "page_size": DEFAULT_PAGE_SIZE,
    },
}


class Settings(BaseModel):
    """Project settings loaded from .twinmap/config.yaml."""
    select_descendants_with_parent: bool = True
    start_collapsed: bool = False
    page_size: int = DEFAULT_PAGE_SIZE


def config_path(root_dir: Path | None = None) -> Path:
    return (root_dir or Path.cwd()) / CONFIG_DIR / CONFIG_FILE


def load_settings(root_dir: Path | None = None) -> Settings:
    """
    Load settings from the project config file.

    A missing or unreadable file yields the defaults.
    """
    path = config_path(root_dir)
    if not path.exists():
        return Settings()

    try:
        data = yaml.safe_load(path.read_text()) or {}
        return Settings(**data.get("tree", {}))
    except (yaml.YAMLError, ValidationError, AttributeError) as e:
        logger.warning(f"Ignoring invalid config at {path}: {e}")
        return Settings()
