"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets (sample data, chart settings) when the app is frozen.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    DEFAULT_SETTINGS_PATH (str): Absolute path to the bundled chart settings.
    SAMPLE_DATA_PATH (str): Absolute path to the bundled sample dataset.
"""
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # config.py is in src/lineagechart/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


ASSETS_PATH: str = get_resource_path("assets")
DEFAULT_SETTINGS_PATH: str = os.path.join(ASSETS_PATH, "chart_settings.json")
SAMPLE_DATA_PATH: str = os.path.join(ASSETS_PATH, "models.csv")

if not os.path.exists(ASSETS_PATH):
    logger.warning(f"Assets path not found at {ASSETS_PATH}")
