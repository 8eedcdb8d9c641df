"""
Pydantic data models for build targets and their finalized descriptors.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class TargetKind(str, Enum):
    """
    The closed set of target kinds.
    """

    BINARY = "binary"
    STATIC_LIBRARY = "static"
    SHARED_LIBRARY = "shared"

    @classmethod
    def parse(cls, value: Any) -> "TargetKind":
        """
        Returns the TargetKind for value, accepting the long spellings
        (staticLibrary, shared_library, ...). Raises ValueError otherwise.
        """
        if isinstance(value, TargetKind):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Target kind must be a string, got {type(value).__name__}")
        normalized = value.replace("_", "").replace("-", "").lower()
        aliases = {
            "binary": cls.BINARY,
            "bin": cls.BINARY,
            "static": cls.STATIC_LIBRARY,
            "staticlibrary": cls.STATIC_LIBRARY,
            "shared": cls.SHARED_LIBRARY,
            "sharedlibrary": cls.SHARED_LIBRARY,
        }
        if normalized not in aliases:
            raise ValueError(f"Unsupported target kind: {value}")
        return aliases[normalized]


class BuildTarget(BaseModel):
    """
    A named buildable output and the requirements attached to it.

    ``requirements`` keeps attachment order and never holds duplicates.
    """

    name: str
    kind: TargetKind
    sources: List[str] = Field(..., description="Ordered source entry points")
    requirements: List[str] = Field(default_factory=list)

    def add_requirement(self, requirement_name: str) -> bool:
        """Returns False if the requirement was already attached."""
        if requirement_name in self.requirements:
            return False
        self.requirements.append(requirement_name)
        return True

    def remove_requirement(self, requirement_name: str) -> bool:
        """Returns False if the requirement was not attached."""
        if requirement_name not in self.requirements:
            return False
        self.requirements.remove(requirement_name)
        return True


class TargetDescriptor(BaseModel):
    """
    The finalized build graph node handed to the compiler and linker.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: TargetKind
    sources: Tuple[str, ...]
    requirements: Tuple[str, ...] = ()
    include_paths: Tuple[str, ...] = ()
    link_artifacts: Tuple[str, ...] = ()
    link_flags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """
        Converts to a JSON-compatible dictionary.
        """
        return self.model_dump(mode="json")
