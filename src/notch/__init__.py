"""
Notch - an overlay notch with pluggable, software-rendered modules
"""

__version__ = "0.1.0"

from .controller import NotchController

__all__ = ["NotchController"]
