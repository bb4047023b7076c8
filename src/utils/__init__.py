"""
Utility modules shared by the knowledge graph packages.
"""

from .logger import setup_logger

__all__ = ["setup_logger"]
