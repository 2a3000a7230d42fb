"""
Base document model for identity entities.
"""
from datetime import datetime, timezone
from typing import ClassVar, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def new_id() -> str:
    """Generate a document id (GUID string)."""
    return str(uuid4())


class IdentityDocument(BaseModel):
    """
    A document stored by the identity storage provider.

    Class attributes:
        partition_key: Partition discriminator shared by every document of
            this type; None stores the type without a partition
        collection: Container used by the per-type storage strategy
    """

    partition_key: ClassVar[Optional[str]] = None
    collection: ClassVar[str] = ""

    id: str = Field(default_factory=new_id, alias="_id", description="Document id")
    timestamp: Optional[datetime] = Field(
        None,
        alias="_ts",
        description="Last write time, stored as Unix seconds",
    )

    class Config:
        populate_by_name = True
        validate_assignment = True

    @field_validator("id", mode="before")
    @classmethod
    def _generate_missing_id(cls, value):
        return value or new_id()

    @field_validator("*", mode="after")
    @classmethod
    def _to_stored_precision(cls, value):
        # BSON dates are UTC with millisecond precision
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
            value = value.replace(microsecond=value.microsecond // 1000 * 1000)
        return value

    def to_document(self) -> dict:
        """Serialize to a store document (aliases applied, _ts left to the provider)."""
        return self.model_dump(by_alias=True, exclude={"timestamp"})

    @classmethod
    def document_key(cls, field_name: str) -> str:
        """Stored key for a model field name."""
        field = cls.model_fields.get(field_name)
        if field is None:
            raise ValueError(f"{cls.__name__} has no field {field_name!r}")
        return field.alias or field_name
