from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Mapping
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ConfigDict


class FrozenDTO(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )


class BaseDTO(FrozenDTO):
    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


def read_only_mapping(value: Mapping[str, str]) -> Mapping[str, str]:
    # frozen=True only guards attribute assignment, not the mapping itself
    return MappingProxyType(dict(value))


def plain_dict(value: Mapping[str, str]) -> Dict[str, str]:
    return dict(value)
