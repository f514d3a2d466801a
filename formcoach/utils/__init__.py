"""
Utility functions for the Form Coach project.
"""

from .io_utils import load_config

__all__ = [
    'load_config',
]
