"""
Utility functions for CytoMark package.
"""

from .paths import CytoMarkPathManager, get_output_dir

__all__ = [
    'CytoMarkPathManager',
    'get_output_dir',
]
