"""Built-in validators for formtree.

Each entry in BUILTIN_FACTORIES is a factory: it takes the literal arguments
of a rule segment and returns a validator function. A validator receives the
control and returns None (no error), an error record, or an awaitable of
either.

Available validators:
- empty, required
- email, numeric, integer
- equal, notEqual, is, isNot
- min, greater, max, less, between
- alpha, alphaDash, alphaNumeric, alphaSpaces
- length, minLength, maxLength, betweenLength
- pattern
- confirm (cross-control equality, watches the compared control)
- include, exclude
- mimes, size, dimensions (file values, via the file inspector)
"""

import asyncio
import re
from typing import TYPE_CHECKING, Any

from formtree.rules import util
from formtree.rules.util import input_value_length, is_empty_input_value
from formtree.types import ValidationResult, ValidatorFactory, ValidatorFn

if TYPE_CHECKING:
    from formtree.control import Control


def null_validator(control: "Control") -> ValidationResult:
    return None


# =============================================================================
# Presence and format
# =============================================================================


def _empty(control: "Control") -> ValidationResult:
    return None if is_empty_input_value(control.value) else {"empty": True}


def _required(control: "Control") -> ValidationResult:
    return {"required": True} if is_empty_input_value(control.value) else None


def _email(control: "Control") -> ValidationResult:
    value = control.value
    if is_empty_input_value(value) or util.is_email_value(value):
        return None
    return {"email": True}


def _numeric(control: "Control") -> ValidationResult:
    value = control.value
    if is_empty_input_value(value) or util.is_numeric(value):
        return None
    return {"numeric": True}


def _integer(control: "Control") -> ValidationResult:
    value = control.value
    if is_empty_input_value(value) or util.is_integer(value):
        return None
    return {"integer": True}


def empty() -> ValidatorFn:
    return _empty


def required() -> ValidatorFn:
    return _required


def email() -> ValidatorFn:
    return _email


def numeric() -> ValidatorFn:
    return _numeric


def integer() -> ValidatorFn:
    return _integer


# =============================================================================
# Equality
# =============================================================================


def equal(compared: Any) -> ValidatorFn:
    def validate_equal(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_equal(value, compared):
            return None
        return {"equal": {"compared": compared, "actual": value}}

    return validate_equal


def not_equal(compared: Any) -> ValidatorFn:
    def validate_not_equal(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_not_equal(value, compared):
            return None
        return {"notEqual": {"compared": compared, "actual": value}}

    return validate_not_equal


def is_(compared: Any) -> ValidatorFn:
    def validate_is(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_strict_equal(value, compared):
            return None
        return {"is": {"compared": compared, "actual": value}}

    return validate_is


def is_not(compared: Any) -> ValidatorFn:
    def validate_is_not(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_not_strict_equal(value, compared):
            return None
        return {"isNot": {"compared": compared, "actual": value}}

    return validate_is_not


# =============================================================================
# Numeric bounds
# =============================================================================


def min_(compared: float) -> ValidatorFn:
    def validate_min(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_not_less_than(value, compared):
            return None
        return {"min": {"min": compared, "actual": value}}

    return validate_min


def greater(compared: float) -> ValidatorFn:
    def validate_greater(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_greater_than(value, compared):
            return None
        return {"greater": {"min": compared, "actual": value}}

    return validate_greater


def max_(compared: float) -> ValidatorFn:
    def validate_max(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_not_greater_than(value, compared):
            return None
        return {"max": {"max": compared, "actual": value}}

    return validate_max


def less(compared: float) -> ValidatorFn:
    def validate_less(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_less_than(value, compared):
            return None
        return {"less": {"max": compared, "actual": value}}

    return validate_less


def between(min_value: float, max_value: float) -> ValidatorFn:
    def validate_between(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value) or util.is_between(value, min_value, max_value):
            return None
        return {"between": {"min": min_value, "max": max_value, "actual": value}}

    return validate_between


# =============================================================================
# Alphabetic
# =============================================================================


def _alpha_factory(kind: str, check) -> ValidatorFactory:
    def factory(locale: str | None = None) -> ValidatorFn:
        def validate_alpha(control: "Control") -> ValidationResult:
            value = control.value
            if is_empty_input_value(value) or check(value, locale):
                return None
            return {kind: True}

        validate_alpha.__name__ = kind
        return validate_alpha

    return factory


alpha = _alpha_factory("alpha", util.is_alpha)
alpha_dash = _alpha_factory("alphaDash", util.is_alpha_dash)
alpha_numeric = _alpha_factory("alphaNumeric", util.is_alpha_numeric)
alpha_spaces = _alpha_factory("alphaSpaces", util.is_alpha_spaces)


# =============================================================================
# Length
# =============================================================================


def length(required_length: int) -> ValidatorFn:
    def validate_length(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        actual = input_value_length(value)
        if actual == required_length:
            return None
        return {"length": {"required_length": required_length, "actual_length": actual}}

    return validate_length


def min_length(required_length: int) -> ValidatorFn:
    def validate_min_length(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        actual = input_value_length(value)
        if actual >= required_length:
            return None
        return {"minLength": {"required_length": required_length, "actual_length": actual}}

    return validate_min_length


def max_length(required_length: int) -> ValidatorFn:
    def validate_max_length(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        actual = input_value_length(value)
        if actual <= required_length:
            return None
        return {"maxLength": {"required_length": required_length, "actual_length": actual}}

    return validate_max_length


def between_length(min_len: int, max_len: int) -> ValidatorFn:
    def validate_between_length(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        actual = input_value_length(value)
        if min_len <= actual <= max_len:
            return None
        return {
            "betweenLength": {"min_length": min_len, "max_length": max_len, "actual_length": actual}
        }

    return validate_between_length


# =============================================================================
# Pattern
# =============================================================================


def pattern(required_pattern: "str | re.Pattern | None") -> ValidatorFn:
    """Match the whole value against a pattern.

    String patterns are anchored with ^ and $ unless they already are.
    """
    if not required_pattern:
        return null_validator

    if isinstance(required_pattern, str):
        source = required_pattern
        if not source.startswith("^"):
            source = "^" + source
        if not source.endswith("$"):
            source += "$"
        regex = re.compile(source)
    else:
        regex = required_pattern
        source = regex.pattern

    def validate_pattern(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        if regex.search(str(value)):
            return None
        return {"pattern": {"required_pattern": source, "actual_value": value}}

    return validate_pattern


# =============================================================================
# Cross-control equality
# =============================================================================


def confirm(path_or_control: "str | Control") -> ValidatorFn:
    """The value must equal another control's value.

    A string argument is a path resolved from the validated control's parent.
    The validated control watches the compared one, so editing the compared
    control re-triggers this validation.
    """

    def validate_confirm(control: "Control") -> ValidationResult:
        if isinstance(path_or_control, str):
            parent = control.parent
            if parent is None:
                return None
            compared_control = parent.find(path_or_control)
            if compared_control is None:
                return None
        else:
            compared_control = path_or_control

        control.watch(compared_control)

        value = control.value
        if is_empty_input_value(value):
            return None
        compared = compared_control.value
        if is_empty_input_value(compared) or compared == value:
            return None
        return {"confirm": {"compared": compared, "actual_value": value}}

    return validate_confirm


# =============================================================================
# Membership
# =============================================================================


def include(*includes: Any) -> ValidatorFn:
    def validate_include(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        if isinstance(value, (list, tuple)):
            missing = [i for i in includes if i not in value]
        else:
            missing = [i for i in includes if value != i]
        if not missing:
            return None
        return {"include": {"includes": list(includes), "actual_value": value}}

    return validate_include


def exclude(*excludes: Any) -> ValidatorFn:
    def validate_exclude(control: "Control") -> ValidationResult:
        value = control.value
        if is_empty_input_value(value):
            return None
        if isinstance(value, (list, tuple)):
            found = [i for i in excludes if i in value]
        else:
            found = [i for i in excludes if value == i]
        if not found:
            return None
        return {"exclude": {"excludes": list(excludes), "actual_value": value}}

    return validate_exclude


# =============================================================================
# Files
# =============================================================================

_SIZE_UNIT = re.compile(r"(m|k|g|t)?b$", re.IGNORECASE)
_UNIT_BYTES = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3, "tb": 1024**4}


def mimes(*mime_types: str) -> ValidatorFn:
    """Every selected file must have one of the MIME types (``*`` wildcards allowed)."""
    alternatives = "|".join(re.escape(m).replace(r"\*", ".+") for m in mime_types)
    regex = re.compile(f"(?:{alternatives})$", re.IGNORECASE)

    def validate_mimes(control: "Control") -> ValidationResult:
        infos = control.file_infos
        if not infos:
            return None
        errors = [
            {"file": info.to_dict(), "index": index}
            for index, info in enumerate(infos)
            if not regex.search(info.type)
        ]
        if not errors:
            return None
        return {"mimes": {"required_mimes": list(mime_types), "files": errors}}

    return validate_mimes


def size(max_size: "int | float | str") -> ValidatorFn:
    """Every selected file must be at most ``max_size`` (default unit: mb)."""
    text = str(max_size).strip()
    amount = util.parse_float(text) or 0.0
    unit_match = _SIZE_UNIT.search(text)
    if unit_match:
        unit = (unit_match.group(1) or "").lower() + "b"
    else:
        unit = "mb"
    limit = amount * _UNIT_BYTES[unit]
    label = f"{amount:g}{unit}"

    def validate_size(control: "Control") -> ValidationResult:
        infos = control.file_infos
        if not infos:
            return None
        errors = [
            {"file": info.to_dict(), "index": index}
            for index, info in enumerate(infos)
            if info.size > limit
        ]
        if not errors:
            return None
        return {"size": {"max_size": label, "files": errors}}

    return validate_size


DIMENSION_KEYS = ("width", "height", "ratio")


def dimensions(conditions: dict[str, Any]) -> ValidatorFn:
    """Every selected image must satisfy the width/height/ratio conditions.

    Conditions are strings such as ``">=100"``, ``"<>1.5"`` or lists of them.
    """
    if not isinstance(conditions, dict):
        raise TypeError("dimensions() expects a mapping of width/height/ratio conditions")
    parsed = {
        key: util.parse_conditions(conditions[key])
        for key in DIMENSION_KEYS
        if conditions.get(key) is not None
    }

    async def validate_dimensions(control: "Control") -> ValidationResult:
        files = control.files
        if not files:
            return None

        inspector = control.file_inspector
        infos = await asyncio.gather(*(inspector.describe_image_file(f) for f in files))

        errors = []
        for index, info in enumerate(infos):
            row: dict[str, Any] = {}
            for key, key_conditions in parsed.items():
                actual = getattr(info, key)
                if not util.matches_conditions(actual, key_conditions):
                    row[key] = {
                        "actual": actual,
                        "conditions": [str(c) for c in key_conditions],
                    }
            if row:
                errors.append({"file": row, "index": index})

        if not errors:
            return None
        return {
            "dimensions": {
                "conditions": {k: [str(c) for c in v] for k, v in parsed.items()},
                "files": errors,
            }
        }

    return validate_dimensions


# =============================================================================
# Registration table
# =============================================================================

BUILTIN_FACTORIES: dict[str, ValidatorFactory] = {
    "empty": empty,
    "required": required,
    "email": email,
    "numeric": numeric,
    "integer": integer,
    "equal": equal,
    "notEqual": not_equal,
    "is": is_,
    "isNot": is_not,
    "min": min_,
    "greater": greater,
    "max": max_,
    "less": less,
    "between": between,
    "alpha": alpha,
    "alphaDash": alpha_dash,
    "alphaNumeric": alpha_numeric,
    "alphaSpaces": alpha_spaces,
    "length": length,
    "minLength": min_length,
    "maxLength": max_length,
    "betweenLength": between_length,
    "pattern": pattern,
    "confirm": confirm,
    "include": include,
    "exclude": exclude,
    "mimes": mimes,
    "size": size,
    "dimensions": dimensions,
}
