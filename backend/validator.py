"""
Declarative validation of a sanitized submission against a FormSchema.
Fail-fast: the first violation raises ValidationError and no partial output is returned.
"""

import re
from typing import Any, Callable, Dict, List

from sanitizer import sanitize_string
from schemas import FieldSpec, FormSchema

# Digits are spelled [0-9]: \d also matches non-ASCII decimal digits
RE_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RE_PHONE = re.compile(r"^[+()\-0-9\s.]{4,}$")
RE_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
RE_TIME = re.compile(r"^[0-9]{2}:[0-9]{2}$")

DEFAULT_STRING_MAX = 5000
DEFAULT_PHONE_MAX = 40
EMAIL_MIN, EMAIL_MAX = 3, 254

# strArrayCapped limits; the item cap matches the default per-field byte cap
ARRAY_MAX_ITEMS = 50
ARRAY_MAX_ITEM_BYTES = 5000
ARRAY_MAX_TOTAL_BYTES = 20000


class ValidationError(ValueError):
    """First schema violation found in a submission; str(exc) is the client-facing message."""


def byte_len(s: str) -> int:
    return len(s.encode("utf-8"))


def _is_empty(v: Any) -> bool:
    return v is None or v == ""


def _as_text(v: Any) -> str:
    # Mirrors String(v) coercion for scalars: JSON booleans render lower-case
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def must_str(v: Any, min_len: int, max_len: int, field: str) -> str:
    if not isinstance(v, str):
        raise ValidationError(f"invalid {field}")
    t = sanitize_string(v)
    if len(t) < min_len:
        raise ValidationError(f"{field} too short")
    if len(t) > max_len:
        raise ValidationError(f"{field} too long")
    return t


def must_email(v: Any, spec: FieldSpec) -> str:
    s = must_str(_as_text(v), EMAIL_MIN, EMAIL_MAX, spec.name)
    if not RE_EMAIL.match(s):
        raise ValidationError(f"invalid {spec.name}")
    return s


def must_phone(v: Any, spec: FieldSpec) -> str:
    s = must_str(_as_text(v), 0, spec.max or DEFAULT_PHONE_MAX, spec.name)
    if s and not RE_PHONE.match(s):
        raise ValidationError(f"invalid {spec.name}")
    return s


def must_date(v: Any, spec: FieldSpec) -> str:
    s = must_str(_as_text(v), 0, 20, spec.name)
    if s and not RE_DATE.match(s):
        raise ValidationError(f"invalid {spec.name}")
    return s


def must_time(v: Any, spec: FieldSpec) -> str:
    s = must_str(_as_text(v), 0, 20, spec.name)
    if s and not RE_TIME.match(s):
        raise ValidationError(f"invalid {spec.name}")
    return s


def must_enum(v: Any, spec: FieldSpec) -> str:
    s = must_str(_as_text(v), 1, 200, spec.name)
    if s not in (spec.options or ()):
        raise ValidationError(f"invalid {spec.name}")
    return s


def must_string(v: Any, spec: FieldSpec) -> str:
    max_len = spec.max if spec.max is not None else DEFAULT_STRING_MAX
    return must_str(v, spec.min or 0, max_len, spec.name)


def str_array_capped(
    v: Any,
    spec: FieldSpec,
    max_items: int = ARRAY_MAX_ITEMS,
    max_item_bytes: int = ARRAY_MAX_ITEM_BYTES,
    max_total_bytes: int = ARRAY_MAX_TOTAL_BYTES,
) -> List[str]:
    field = spec.name
    if not isinstance(v, list):
        raise ValidationError(f"invalid {field}")
    if len(v) > max_items:
        raise ValidationError(f"{field} has too many items")
    out: List[str] = []
    total = 0
    for i, item in enumerate(v):
        s = must_str(_as_text(item), 0, max_item_bytes, f"{field}[{i}]")
        n = byte_len(s)
        if n > max_item_bytes:
            raise ValidationError(f"{field}[{i}] too large")
        total += n
        if total > max_total_bytes:
            raise ValidationError(f"{field} total size too large")
        out.append(s)
    return out


CHECKS: Dict[str, Callable[[Any, FieldSpec], Any]] = {
    "string": must_string,
    "email": must_email,
    "phone": must_phone,
    "date": must_date,
    "time": must_time,
    "enum": must_enum,
    "strArrayCapped": str_array_capped,
}


def validate(form_name: str, schema: FormSchema, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate `fields` against `schema`. The result has exactly the schema's keys,
    with "" or [] standing in for empty optional fields.
    """
    if form_name != schema.form:
        raise ValidationError("wrong_form")
    allowed = set(schema.field_names)
    for key in fields:
        if key not in allowed:
            raise ValidationError(f"unexpected field: {key}")

    out: Dict[str, Any] = {}
    for spec in schema.fields:
        value = fields.get(spec.name)
        if _is_empty(value):
            if spec.required:
                raise ValidationError(f"missing: {spec.name}")
            out[spec.name] = [] if spec.type == "strArrayCapped" else ""
            continue
        check = CHECKS.get(spec.type)
        if check is None:
            raise ValidationError(f"unknown type: {spec.type}")
        out[spec.name] = check(value, spec)
    return out


def enforce_byte_limits(value: Any, max_bytes_per_field: int) -> None:
    """Walk validated fields and reject any string over the per-field byte cap."""
    if isinstance(value, str):
        if byte_len(value) > max_bytes_per_field:
            raise ValidationError(f"field exceeds {max_bytes_per_field} bytes")
    elif isinstance(value, list):
        for v in value:
            enforce_byte_limits(v, max_bytes_per_field)
    elif isinstance(value, dict):
        for v in value.values():
            enforce_byte_limits(v, max_bytes_per_field)
