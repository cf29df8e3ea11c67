"""
Field Validation Module

Responsibility:
- Validate user-supplied values against a ServiceDefinition's field schema
- Substitute declared defaults for missing values
- Normalise booleans and strip strings
- Return every FieldError found (never stops at the first one)

This is PURE deterministic validation logic.
The Builder only ever consumes the validated mapping returned here.
"""

import re
from typing import Any, Dict, List, Tuple

from errors import FieldValidationError
from models import FieldError, FieldSpec, ServiceDefinition


_BOOLEAN_STRINGS = {"true": True, "false": False}


def validate_fields(service: ServiceDefinition, user_values: Dict[str, Any]) -> Tuple[Dict[str, Any], List[FieldError]]:
    """
    Validate user values against the service schema.

    Args:
        service: Catalog entry whose fields define the schema
        user_values: Raw mapping of field name -> value; unknown names are ignored

    Returns:
        (validated values in schema order, list of FieldError)
    """
    validated = {}
    errors = []

    for spec in service.fields:
        raw = user_values.get(spec.name)

        if _is_missing(raw):
            if spec.default is not None:
                validated[spec.name] = spec.default
            elif spec.required:
                errors.append(FieldError(
                    field=spec.name,
                    code="MissingRequiredField",
                    reason=f"Field '{spec.name}' is required",
                ))
            continue

        value, error = _check_value(spec, raw)
        if error:
            errors.append(error)
        else:
            validated[spec.name] = value

    return validated, errors


def validate_or_raise(service: ServiceDefinition, user_values: Dict[str, Any]) -> Dict[str, Any]:
    """Same as validate_fields, but raises FieldValidationError carrying every error."""
    validated, errors = validate_fields(service, user_values)
    if errors:
        raise FieldValidationError(errors)
    return validated


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_value(spec: FieldSpec, raw: Any):
    """Returns (normalised value, None) or (None, FieldError)."""
    if spec.kind == "boolean":
        if isinstance(raw, bool):
            return raw, None
        if isinstance(raw, str) and raw.strip().lower() in _BOOLEAN_STRINGS:
            return _BOOLEAN_STRINGS[raw.strip().lower()], None
        return None, FieldError(
            field=spec.name,
            code="TypeMismatch",
            reason=f"Field '{spec.name}' must be true or false",
            value=raw,
        )

    if not isinstance(raw, str):
        return None, FieldError(
            field=spec.name,
            code="TypeMismatch",
            reason=f"Field '{spec.name}' must be a string",
            value=raw,
        )

    if spec.kind == "enum":
        if raw not in spec.allowed_values:
            return None, FieldError(
                field=spec.name,
                code="InvalidEnumValue",
                reason=f"'{raw}' is not a valid value for '{spec.name}'",
                value=raw,
                options=list(spec.allowed_values),
            )
        return raw, None

    value = raw.strip()

    if spec.pattern and not re.fullmatch(spec.pattern, value):
        return None, FieldError(
            field=spec.name,
            code="PatternMismatch",
            reason=f"'{value}' does not match the expected format for '{spec.name}'",
            value=value,
        )

    return value, None
