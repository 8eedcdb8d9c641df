"""
Build target definition and finalization.
"""

from .binder import TargetBinder

__all__ = ["TargetBinder"]
