"""Shared pydantic base for persisted entities."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentModel(BaseModel):
    """Base model whose JSON form uses camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    @field_validator("*")
    @classmethod
    def _timestamps_to_utc(cls, value):
        # naive values are taken as local time
        if isinstance(value, datetime):
            return value.astimezone(timezone.utc)
        return value

    def to_document(self) -> dict:
        """Serialize to the JSON-compatible on-disk form."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, data: dict):
        """Create from the on-disk form."""
        return cls.model_validate(data)
