import os
import re
from datetime import datetime, timezone
from typing import Optional, Dict, Mapping

from pydantic import Field, field_serializer, field_validator

from buildmatrix.common.dto.base import FrozenDTO, plain_dict, read_only_mapping


_REFERENCE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class EnvironmentSnapshot(FrozenDTO):
    variables: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("variables")
    @classmethod
    def validate_variables(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return read_only_mapping(v)

    @field_serializer("variables")
    def serialize_variables(self, v: Mapping[str, str]) -> Dict[str, str]:
        return plain_dict(v)

    @classmethod
    def capture(cls, source: Optional[Mapping[str, str]] = None) -> "EnvironmentSnapshot":
        source = os.environ if source is None else source
        return cls(variables=dict(source))

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)

    def merged(self, overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        env = dict(self.variables)
        for key, value in (overrides or {}).items():
            env[key] = self._expand(value).strip()
        return env

    def _expand(self, value: str) -> str:
        # References resolve against the snapshot, never against another override.
        return _REFERENCE_PATTERN.sub(
            lambda match: self.variables.get(match.group(1), ""),
            value,
        )
