"""
Pydantic data models for package requirements and their resolutions.

A requirement names a package that is described by a foreign manifest
(e.g. a Cargo.toml) together with the options that parameterize how the
foreign resolver interprets that manifest. Resolving a requirement yields a
ResolvedPackage: the include paths, library artifacts and link flags that a
build target consuming the package must inherit.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ECOSYSTEM_SEPARATOR = "::"


class CrateType(str, Enum):
    """Library flavour requested from cargo."""

    STATICLIB = "staticlib"
    RLIB = "rlib"


class RequirementOptions(BaseModel):
    """
    Options forwarded to the foreign resolver.

    Options whose meaning is known are modelled as typed fields. Every other
    key is kept verbatim in ``extra`` and passed through untouched.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    features: List[str] = Field(default_factory=list, description="Cargo features to enable")
    default_features: bool = Field(True, description="Whether cargo default features stay enabled")
    crate_type: CrateType = Field(CrateType.STATICLIB, description="staticlib or rlib")
    target_triple: Optional[str] = Field(None, description="Cross-compilation target triple")
    mode: Optional[str] = Field(None, description="debug or release, overrides the build mode")
    include_dirs: List[str] = Field(
        default_factory=list, description="Include paths relative to the manifest directory"
    )
    env: Dict[str, str] = Field(default_factory=dict, description="Extra resolver environment")
    cargo_toml: Optional[str] = Field(None, description="Alternative spelling of the manifest path")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Opaque pass-through options")

    @model_validator(mode="before")
    @classmethod
    def _collect_passthrough(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        extra = data.pop("extra", None) or {}
        if not isinstance(extra, dict):
            raise ValueError(f"'extra' must be a table of options, got {type(extra).__name__}")
        extra = dict(extra)
        for key in list(data.keys()):
            if key not in cls.model_fields:
                extra[key] = data.pop(key)
        data["extra"] = extra
        return data

    @field_validator("features", mode="before")
    @classmethod
    def _split_features(cls, value: Any) -> Any:
        # "a,b c" is accepted the same way cargo's --features accepts it
        if isinstance(value, str):
            return [f for f in value.replace(",", " ").split() if f]
        return value

    @field_validator("mode")
    @classmethod
    def _check_mode(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.lower()
        if value not in ("debug", "release"):
            raise ValueError(f"mode must be 'debug' or 'release', got '{value}'")
        return value


class PackageRequirement(BaseModel):
    """
    A named dependency satisfied through a foreign package manifest.

    Immutable once declared. The manifest is not read until resolution.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique requirement name, optionally 'ecosystem::package'")
    manifest_path: str = Field(..., description="Path to the foreign manifest")
    options: RequirementOptions = Field(default_factory=RequirementOptions)

    @property
    def ecosystem(self) -> Optional[str]:
        """The ecosystem prefix of the name (``cargo`` for ``cargo::rsa``), if any."""
        if ECOSYSTEM_SEPARATOR in self.name:
            return self.name.split(ECOSYSTEM_SEPARATOR, 1)[0]
        return None

    @property
    def package_name(self) -> str:
        """The name without its ecosystem prefix."""
        return self.name.split(ECOSYSTEM_SEPARATOR, 1)[-1]


class ResolvedPackage(BaseModel):
    """
    The compile and link artifacts produced by resolving a requirement.
    """

    model_config = ConfigDict(frozen=True)

    include_paths: Tuple[str, ...] = ()
    link_artifacts: Tuple[str, ...] = ()
    link_flags: Tuple[str, ...] = ()
    manifest_digest: Optional[str] = Field(
        None, description="sha256 of the manifest the package was resolved from"
    )

    def same_artifacts(self, other: "ResolvedPackage") -> bool:
        """Compares artifact content, ignoring the manifest digest."""
        return (
            self.include_paths == other.include_paths
            and self.link_artifacts == other.link_artifacts
            and self.link_flags == other.link_flags
        )
