"""
Shared Pydantic models for form schemas and the relay envelope.
Form schemas are allow-lists: a field that is not declared is rejected.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Frozen models: schemas are built once at startup and envelopes never change after construction.
FROZEN_CONFIG = ConfigDict(frozen=True, extra="forbid")

ENVELOPE_SCHEMA = "ops.v1"

FieldType = Literal["string", "email", "phone", "date", "time", "enum", "strArrayCapped"]


class FieldSpec(BaseModel):
    model_config = FROZEN_CONFIG
    name: str = Field(..., min_length=1)
    # Plain str so a schema with an unknown type can still be declared; the validator rejects it.
    type: str
    required: bool = False
    min: Optional[int] = Field(None, ge=0)
    max: Optional[int] = Field(None, ge=0)
    options: Optional[Tuple[str, ...]] = None


class FormSchema(BaseModel):
    """Ordered, uniquely named set of fields for one form."""
    model_config = FROZEN_CONFIG
    form: str = Field(..., min_length=1)
    fields: Tuple[FieldSpec, ...]

    @field_validator("fields")
    @classmethod
    def unique_names(cls, v: Tuple[FieldSpec, ...]):
        names = [f.name for f in v]
        if len(names) != len(set(names)):
            raise ValueError("field names must be unique")
        return v

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Envelope(BaseModel):
    """Normalized, schema-validated unit relayed from intake to transit."""
    model_config = FROZEN_CONFIG
    schema_: Literal["ops.v1"] = Field(ENVELOPE_SCHEMA, alias="schema")
    submitted_at: str = Field(default_factory=utc_now_iso)
    asset_id: str
    form: str
    fields: Dict[str, Any]

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
