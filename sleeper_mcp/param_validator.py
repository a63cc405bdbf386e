"""Central parameter schema validation utility.

Every catalog operation declares its parameters with a schema in this format
so validation happens in one place, before any cache or upstream work, and
produces consistent error messages.

Schema format (dict):
{
  "param_name": {
      "type": type|tuple[type,...],   # e.g. int, str, list
      "required": bool,               # default False
      "min": number,                  # for numeric types
      "max": number,                  # for numeric types
      "choices": [..],                # allowed values
      "default": any,                 # applied if missing & not required
      "nullable": bool,               # if True allows None
      "pattern": re.Pattern,          # full match for str values
      "item_pattern": re.Pattern,     # full match for each item of a list
      "max_items": int,               # for list values
      "max_length": int,              # for str values (default: security.max_string_length)
  }, ...
}

Return: (validated_dict, errors_list)
If errors_list is empty, validation succeeded.
"""
from __future__ import annotations
from typing import Any, Dict, Tuple, List

from .config import MAX_STRING_LENGTH
from .errors import ParameterValidationError


def _type_name(expected_type) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(getattr(t, "__name__", str(t)) for t in expected_type if t is not type(None))
    return getattr(expected_type, "__name__", str(expected_type))


def _coerce(val: Any, expected_type) -> Any:
    """Allow numeric strings for int/float parameters and ints for str ids."""
    if expected_type in (int, float) and isinstance(val, str):
        return expected_type(val.strip())
    if expected_type is str and isinstance(val, int) and not isinstance(val, bool):
        return str(val)
    return val


def validate_params(schema: Dict[str, Dict[str, Any]], values: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    validated: Dict[str, Any] = {}
    errors: List[str] = []

    unknown = sorted(set(values) - set(schema))
    for name in unknown:
        errors.append(f"'{name}' is not a recognized parameter")

    for name, spec in schema.items():
        val = values.get(name, None)
        required = spec.get("required", False)
        nullable = spec.get("nullable", False)
        expected_type = spec.get("type", Any)

        if val is None:
            if "default" in spec:
                validated[name] = spec["default"]
                continue
            if required and not nullable:
                errors.append(f"'{name}' is required")
                continue
            validated[name] = None
            continue

        if expected_type is not Any:
            try:
                val = _coerce(val, expected_type)
            except (TypeError, ValueError):
                errors.append(f"'{name}' must be of type {_type_name(expected_type)}")
                continue
            if isinstance(val, bool) and expected_type in (int, float):
                errors.append(f"'{name}' must be of type {_type_name(expected_type)}")
                continue
            if not isinstance(val, expected_type):
                errors.append(f"'{name}' must be of type {_type_name(expected_type)}")
                continue

        if isinstance(val, str):
            val = val.strip()
            if required and not val:
                errors.append(f"'{name}' cannot be empty")
                continue
            max_length = spec.get("max_length", MAX_STRING_LENGTH)
            if len(val) > max_length:
                errors.append(f"'{name}' must be at most {max_length} characters")
                continue
            pattern = spec.get("pattern")
            if pattern is not None and not pattern.fullmatch(val):
                errors.append(f"'{name}' has an invalid format")
                continue

        if isinstance(val, (int, float)) and not isinstance(val, bool):
            if "min" in spec and val < spec["min"]:
                errors.append(f"'{name}' must be >= {spec['min']}")
            if "max" in spec and val > spec["max"]:
                errors.append(f"'{name}' must be <= {spec['max']}")

        if isinstance(val, list):
            if "max_items" in spec and len(val) > spec["max_items"]:
                errors.append(f"'{name}' must contain at most {spec['max_items']} items")
            item_pattern = spec.get("item_pattern")
            if item_pattern is not None:
                bad = [item for item in val if not isinstance(item, str) or not item_pattern.fullmatch(item)]
                if bad:
                    errors.append(f"'{name}' contains invalid items: {', '.join(map(str, bad[:5]))}")

        if spec.get("choices") and val not in spec["choices"]:
            choices_list = ", ".join(map(str, spec["choices"]))
            errors.append(f"'{name}' must be one of: {choices_list}")

        validated[name] = val

    return validated, errors


def validate_or_raise(schema: Dict[str, Dict[str, Any]], values: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and return the cleaned values, raising ParameterValidationError on failure."""
    validated, errors = validate_params(schema, values or {})
    if errors:
        raise ParameterValidationError(errors)
    return validated