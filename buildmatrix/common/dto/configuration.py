import re
from typing import Dict, Mapping, Tuple

from pydantic import Field, field_serializer, field_validator

from buildmatrix.common.dto.base import FrozenDTO, plain_dict, read_only_mapping
from buildmatrix.common.config.constants import ALL_SELECTOR, DEFAULT_BUILD_TARGETS


_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")
_ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Configuration(FrozenDTO):
    """A named build variant.

    ``configure_flags`` keep their order because the build system resolves
    later flags over earlier ones. ``environment_overrides`` apply to a single
    invocation only; a value may reference the inherited value of any
    variable as ``${NAME}``.
    """

    name: str
    configure_flags: Tuple[str, ...] = Field(default_factory=tuple)
    environment_overrides: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    skip_on_missing_tool: bool = Field(default=False)
    build_targets: Tuple[str, ...] = Field(default=DEFAULT_BUILD_TARGETS, min_length=1)
    required_tools: Tuple[str, ...] = Field(default_factory=tuple)
    include_in_all: bool = Field(default=True)
    description: str = Field(default="")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not _NAME_PATTERN.match(v):
            raise ValueError(f"Invalid configuration name: {v!r}")
        if v == ALL_SELECTOR:
            raise ValueError(f"'{ALL_SELECTOR}' is reserved and cannot name a configuration")
        return v

    @field_validator("environment_overrides")
    @classmethod
    def validate_environment_overrides(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        for key in v:
            if not _ENV_NAME_PATTERN.match(key):
                raise ValueError(f"Invalid environment variable name: {key!r}")
        return read_only_mapping(v)

    @field_serializer("environment_overrides")
    def serialize_environment_overrides(self, v: Mapping[str, str]) -> Dict[str, str]:
        return plain_dict(v)

    @field_validator("build_targets")
    @classmethod
    def validate_build_targets(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if any(not target for target in v):
            raise ValueError("Build targets must not be empty")
        return v
