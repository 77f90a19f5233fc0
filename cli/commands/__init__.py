"""
acipatch CLI Commands
Contains the executable modules for patching and inspecting images.
"""

from . import patch
from . import inspect

__all__ = ["patch", "inspect"]
