"""
coursecore/schemas/common.py
Shared pydantic bases

- CamelModel:  wire models; snake_case in Python, camelCase on the wire
- PatchModel:  field-enumerated partial updates with an explicit `clear` set
"""
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every persisted/wire shape."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PatchModel(CamelModel):
    """
    Partial update for one entity.

    Only fields explicitly present in the payload are written. A field is
    never cleared because it was sent as null or as an empty string; clearing
    is requested by naming the field in `clear`:

        LessonUpdate(title="Intro", clear={"video_url"})

    Subclasses list the fields that may be cleared in CLEARABLE.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    CLEARABLE: ClassVar[FrozenSet[str]] = frozenset()

    clear: Set[str] = Field(default_factory=set)

    @field_validator("clear", mode="before")
    @classmethod
    def normalize_clear(cls, value: Any) -> Set[str]:
        """Accept wire (camelCase) or Python (snake_case) field names."""
        if value is None:
            return set()
        by_alias = {(field.alias or name): name for name, field in cls.model_fields.items()}
        return {by_alias.get(item, item) for item in value}

    @model_validator(mode="after")
    def check_clear_and_nulls(self):
        unknown = self.clear - self.CLEARABLE
        if unknown:
            raise ValueError(f"Fields cannot be cleared: {', '.join(sorted(unknown))}")

        provided = self.model_fields_set - {"clear"}
        conflicting = provided & self.clear
        if conflicting:
            raise ValueError(f"Fields both set and cleared: {', '.join(sorted(conflicting))}")

        nulls = [name for name in provided if getattr(self, name) is None]
        if nulls:
            raise ValueError(
                f"Null is not a clear request; list these in 'clear' instead: {', '.join(sorted(nulls))}"
            )
        return self

    def changes(self) -> Dict[str, Any]:
        """Column name -> new value for exactly the touched fields."""
        values = {name: getattr(self, name) for name in self.model_fields_set if name != "clear"}
        values.update({name: None for name in self.clear})
        return values


class StandardResponse(BaseModel):
    """
    Envelope for every successful HTTP response.

    {
        "success": true,
        "message": "Human-readable message",
        "data": {...}
    }
    """
    success: bool = Field(True, description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")
    data: Optional[Any] = Field(None, description="Endpoint-specific data")


def strip_optional(value: Optional[str]) -> Optional[str]:
    """Trim create-time optional strings; blank becomes absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def strip_required_for_patch(value: Optional[str], field_name: str) -> Optional[str]:
    """Trim patch strings; blank is rejected so it can never act as a clear."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} cannot be blank; list it in 'clear' to remove it")
    return value
