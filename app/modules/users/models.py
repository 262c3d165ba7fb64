# Supabase table: users
# Profile rows keyed by the Supabase Auth user id (auth.users.id).
# Credentials and sessions live in auth.users, managed by Supabase Auth.
#
# USER_SCHEMA below is the field-rule table for that row. Adding a column to
# validation means adding a FieldRule, not writing a new check.

import re
from typing import Any, Dict, List, Optional, Tuple
from pydantic import AnyUrl, BaseModel, ConfigDict, TypeAdapter, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_url_adapter = TypeAdapter(AnyUrl)

_PYTHON_TYPES = {
    "string": str,
    "boolean": bool,
    "integer": int,
}


class FieldRule(BaseModel):
    name: str
    type: str = "string"
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    format: Optional[str] = None  # email | uri
    enum: Optional[Tuple[str, ...]] = None
    default: Optional[Any] = None

    model_config = ConfigDict(frozen=True)


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str]


USER_SCHEMA: List[FieldRule] = [
    FieldRule(name="id", required=True),
    FieldRule(name="email", format="email", required=True),
    FieldRule(name="name", required=True, min_length=2, max_length=100),
    FieldRule(name="bio", max_length=500),
    FieldRule(name="avatar_url", format="uri"),
    FieldRule(name="phone", max_length=20),
    FieldRule(name="address", max_length=200),
    FieldRule(name="role", enum=("user", "admin"), default="user"),
    FieldRule(name="created_at"),
    FieldRule(name="updated_at"),
]

# Columns a user may change through the profile update route
UPDATABLE_FIELDS = ("name", "bio", "avatar_url", "phone", "address")


def _is_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _matches_type(value: Any, type_name: str) -> bool:
    expected = _PYTHON_TYPES.get(type_name)
    if expected is None:
        return True
    if expected is int and isinstance(value, bool):
        return False
    return isinstance(value, expected)


def validate_user(
    data: Dict[str, Any],
    partial: bool = False,
    schema: Optional[List[FieldRule]] = None,
) -> ValidationResult:
    """Check a candidate user row against the field-rule table.

    With partial=True only the fields present in data are checked (profile
    updates); otherwise every required field must be present. All rules run,
    so the result lists every violation in table order.
    """
    errors: List[str] = []

    for rule in schema or USER_SCHEMA:
        if partial and rule.name not in data:
            continue

        value = data.get(rule.name)

        if rule.required and (value is None or value == ""):
            errors.append(f"{rule.name} is required")
            continue

        if value is None:
            continue

        if not _matches_type(value, rule.type):
            errors.append(f"{rule.name} must be a {rule.type}")

        if isinstance(value, str):
            if rule.min_length is not None and len(value) < rule.min_length:
                errors.append(f"{rule.name} must be at least {rule.min_length} characters")
            if rule.max_length is not None and len(value) > rule.max_length:
                errors.append(f"{rule.name} must be no more than {rule.max_length} characters")

            if rule.format == "email" and not EMAIL_PATTERN.match(value):
                errors.append(f"{rule.name} must be a valid email address")
            if rule.format == "uri" and not _is_url(value):
                errors.append(f"{rule.name} must be a valid URL")

        if rule.enum is not None and value not in rule.enum:
            errors.append(f"{rule.name} must be one of: {', '.join(rule.enum)}")

    return ValidationResult(valid=not errors, errors=errors)
