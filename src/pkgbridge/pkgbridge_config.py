"""
Configuration parameters for a pkgbridge build invocation.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BuildMode(str, Enum):
    """
    Build modes, mirroring the debug/release mode rules of the primary build system.
    """

    DEBUG = "debug"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value


@dataclass
class PkgBridgeConfig:
    """
    Configuration parameters
    """

    mode: BuildMode = BuildMode.RELEASE
    max_workers: int = 1
    check_sources: bool = True
    default_ecosystem: str = "cargo"
    cargo_target_dir: Optional[str] = None
    cargo_command: str = "cargo"

    def __post_init__(self):
        self.mode = BuildMode(str(self.mode).lower())
        if not isinstance(self.check_sources, bool):
            raise TypeError(f"check_sources must be true or false, got {self.check_sources!r}")
        # bool is an int subclass
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise TypeError(f"max_workers must be an integer, got {self.max_workers!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    @classmethod
    def from_dict(cls, env: dict):
        """
        Create a PkgBridgeConfig instance from a dictionary, ignoring unknown keys
        """
        return cls(**{k: v for k, v in env.items() if k in inspect.signature(cls).parameters})
