"""Value helpers used by the built-in validators."""

import re
from collections.abc import Sized
from dataclasses import dataclass
from typing import Any


# =============================================================================
# Emptiness and length
# =============================================================================


def is_empty_input_value(value: Any) -> bool:
    """True for None, empty strings and empty collections."""
    if value is None:
        return True
    return isinstance(value, Sized) and len(value) == 0


def input_value_length(value: Any) -> int:
    """Length of a string or collection; numbers are measured by their digits."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, Sized):
        return len(value)
    return 0


# =============================================================================
# Format patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^(?=.{1,254}$)(?=.{1,64}@)[-!#$%&'*+/0-9=?A-Z^_`a-z{|}~]+(\.[-!#$%&'*+/0-9=?A-Z^_`a-z{|}~]+)*"
    r"@[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$"
)
NUMERIC_PATTERN = re.compile(r"^[0-9]+$")
INTEGER_PATTERN = re.compile(r"^-?[0-9]+$")
_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def is_email_value(value: Any) -> bool:
    return bool(EMAIL_PATTERN.match(str(value)))


def is_numeric(value: Any) -> bool:
    return bool(NUMERIC_PATTERN.match(str(value)))


def is_integer(value: Any) -> bool:
    return bool(INTEGER_PATTERN.match(str(value)))


def parse_float(value: Any) -> float | None:
    """Parse the leading number of a value, or None if there is none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT.match(str(value))
    if not match:
        return None
    return float(match.group())


# =============================================================================
# Comparisons
# =============================================================================


def is_equal(value: Any, required_value: Any) -> bool:
    """Loose equality: "3" equals 3."""
    if value == required_value:
        return True
    if isinstance(value, str) != isinstance(required_value, str):
        try:
            return float(value) == float(required_value)
        except (TypeError, ValueError):
            return False
    return False


def is_not_equal(value: Any, required_value: Any) -> bool:
    return not is_equal(value, required_value)


def is_strict_equal(value: Any, required_value: Any) -> bool:
    return type(value) is type(required_value) and value == required_value


def is_not_strict_equal(value: Any, required_value: Any) -> bool:
    return not is_strict_equal(value, required_value)


def is_not_less_than(value: Any, minimum: Any) -> bool:
    """value >= minimum; non-numeric values fail."""
    parsed = parse_float(value)
    if parsed is None:
        return False
    return parsed >= float(minimum)


def is_greater_than(value: Any, minimum: Any) -> bool:
    """value > minimum; non-numeric values fail."""
    parsed = parse_float(value)
    if parsed is None:
        return False
    return parsed > float(minimum)


def is_not_greater_than(value: Any, maximum: Any) -> bool:
    """value <= maximum; non-numeric values pass."""
    parsed = parse_float(value)
    if parsed is None:
        return True
    return parsed <= float(maximum)


def is_less_than(value: Any, maximum: Any) -> bool:
    """value < maximum; non-numeric values pass."""
    parsed = parse_float(value)
    if parsed is None:
        return True
    return parsed < float(maximum)


def is_between(value: Any, minimum: Any, maximum: Any) -> bool:
    return is_not_less_than(value, minimum) and is_not_greater_than(value, maximum)


# =============================================================================
# Alphabetic checks, per locale
# =============================================================================

_LETTERS = {
    "en": "A-Za-z",
    "de": "A-Za-zÄÖÜäöüß",
    "es": "A-Za-zÁÉÍÑÓÚÜáéíñóúü",
    "fr": "A-Za-zÀÂÆÇÉÈÊËÏÎÔŒÙÛÜŸàâæçéèêëïîôœùûüÿ",
    "it": "A-Za-zÀÉÈÌÎÓÒÙàéèìîóòù",
    "nl": "A-Za-zÉËÏÓÖÜéëïóöü",
    "pl": "A-Za-zĄĆĘŁŃÓŚŹŻąćęłńóśźż",
    "pt": "A-Za-zÃÁÀÂÇÉÊÍÕÓÔÚÜãáàâçéêíõóôúü",
    "ru": "А-ЯЁа-яё",
    "uk": "А-ЩЬЮЯЄIЇҐа-щьюяєiїґ",
    "ja": "ぁ-ゖァ-ヺー一-鿿",
}


def _build(extra: str) -> dict[str, re.Pattern]:
    return {loc: re.compile(f"^[{letters}{extra}]*$") for loc, letters in _LETTERS.items()}


ALPHA = _build("")
ALPHA_DASH = _build(r"0-9_\-")
ALPHA_NUMERIC = _build("0-9")
ALPHA_SPACES = _build(r"\s")


def _match_locale(patterns: dict[str, re.Pattern], value: Any, locale: str | None) -> bool:
    text = str(value)
    helper = patterns.get(locale) if locale else None
    if helper is not None:
        return bool(helper.match(text))
    return any(p.match(text) for p in patterns.values())


def is_alpha(value: Any, locale: str | None = None) -> bool:
    return _match_locale(ALPHA, value, locale)


def is_alpha_dash(value: Any, locale: str | None = None) -> bool:
    return _match_locale(ALPHA_DASH, value, locale)


def is_alpha_numeric(value: Any, locale: str | None = None) -> bool:
    return _match_locale(ALPHA_NUMERIC, value, locale)


def is_alpha_spaces(value: Any, locale: str | None = None) -> bool:
    return _match_locale(ALPHA_SPACES, value, locale)


# =============================================================================
# Dimension conditions (">=100", "<>1.5", "640")
# =============================================================================

_CONDITION_OPERATOR = re.compile(r"^(<=|>=|<>|!=|<|>|=)+")
_CONDITION_AMOUNT = re.compile(r"\d+(?:\.\d+)?|\.\d+")


@dataclass(frozen=True)
class CompareCondition:
    """A single numeric comparison parsed from a condition string."""

    amount: float
    operator: str

    @property
    def is_not_equal(self) -> bool:
        return self.operator in ("<>", "!=")

    @property
    def has_equal(self) -> bool:
        return not self.is_not_equal and "=" in self.operator

    @property
    def has_greater(self) -> bool:
        return not self.is_not_equal and ">" in self.operator

    @property
    def has_not_greater(self) -> bool:
        return not self.is_not_equal and "<" in self.operator

    def matches(self, value: float) -> bool:
        if self.is_not_equal:
            return value != self.amount
        if self.has_equal and value == self.amount:
            return True
        if self.has_greater:
            return value > self.amount
        if self.has_not_greater:
            return value < self.amount
        return False

    def __str__(self) -> str:
        return f"{self.operator}{self.amount:g}"


def parse_conditions(conditions: Any) -> list[CompareCondition]:
    """Parse one condition or a list of them."""
    if not isinstance(conditions, (list, tuple)):
        conditions = [conditions]
    parsed = []
    for condition in conditions:
        text = str(condition)
        operator = _CONDITION_OPERATOR.match(text)
        amount = _CONDITION_AMOUNT.search(text)
        parsed.append(
            CompareCondition(
                amount=float(amount.group()) if amount else 0.0,
                operator=operator.group() if operator else "=",
            )
        )
    return parsed


def matches_conditions(value: float, conditions: list[CompareCondition]) -> bool:
    return all(c.matches(value) for c in conditions)
