"""
Utility Functions and Helpers

Configuration management and result export for the stereo depth pipeline.
"""

from .config_manager import ConfigManager

__all__ = ['ConfigManager']
