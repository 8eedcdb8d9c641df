"""
Requirement declaration and resolution management.

This package handles:
1. Recording requirements on foreign packages
2. Validating their options
3. Resolving them lazily, at most once per build invocation
4. Tracking resolution states
"""

from .declarator import RequirementDeclarator, ResolutionState, ResolutionStatus

__all__ = ["RequirementDeclarator", "ResolutionState", "ResolutionStatus"]
