"""
Base classes shared by the stored documents.

Documents keep their ids as ``bson.ObjectId`` in Python and in MongoDB; only
JSON output turns them into strings.
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema


def to_object_id(value: str | ObjectId) -> ObjectId:
    """Parse an id, raising ValueError when it is malformed."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


class PyObjectId(ObjectId):
    """ObjectId field type: accepts ObjectId or its hex string."""

    @classmethod
    def __get_pydantic_core_schema__(cls, _source_type: Any, _handler: Any) -> Any:
        return core_schema.no_info_plain_validator_function(
            to_object_id,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json-unless-none"
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, _schema: Any, _handler: Any) -> dict[str, Any]:
        return {"type": "string", "pattern": "^[0-9a-f]{24}$"}


class BaseDocument(BaseModel):
    """
    A document stored in its own collection.

    ``id`` maps to ``_id``; enum fields are stored as their plain values.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def touch(self, now: Optional[datetime] = None, created: bool = False) -> None:
        """Stamp ``updated_at`` (and ``created_at`` for a first write)."""
        now = now or datetime.utcnow()
        self.updated_at = now
        if created:
            self.created_at = now

    def to_mongo(self) -> dict[str, Any]:
        """Document to insert: aliased keys, no unset optionals, no empty ``_id``."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_mongo(cls, document: Optional[dict[str, Any]]):
        if document is None:
            return None
        return cls.model_validate(document)


class EmbeddedModel(BaseModel):
    """Subdocument stored inside another document."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)
