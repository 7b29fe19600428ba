"""Engine-wide defaults for validation timing."""

from __future__ import annotations

import os
from dataclasses import dataclass

from formtree.types import VALIDATE_TIMINGS


def _split_env(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def check_timings(timings: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Normalize validate-on timings, rejecting unknown event names.

    Raises:
        ValueError: If any timing is not one of input, change, blur
    """
    if isinstance(timings, str):
        timings = (timings,)
    for timing in timings:
        if timing not in VALIDATE_TIMINGS:
            raise ValueError(
                f"Unknown validate timing '{timing}'. "
                "Expected one of: " + ", ".join(VALIDATE_TIMINGS)
            )
    return tuple(timings)


@dataclass(frozen=True)
class EngineConfig:
    """Defaults applied to controls that do not configure the value themselves.

    Attributes:
        validate_on: Events that trigger validation
        validate_conditions: Conditions that must hold before a trigger schedules a run
        validate_debounce: Delay in milliseconds before a triggered run starts
        touch_on: Event that marks a control as touched
    """

    validate_on: tuple[str, ...] = ("change",)
    validate_conditions: tuple[str, ...] = ("touched",)
    validate_debounce: int = 0
    touch_on: str = "change"

    def __post_init__(self) -> None:
        object.__setattr__(self, "validate_on", check_timings(self.validate_on))
        check_timings(self.touch_on)
        if self.validate_debounce < 0:
            raise ValueError("validate_debounce must not be negative")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from environment variables.

        Recognised variables:
        - FORMTREE_VALIDATE_ON: comma separated timings (e.g. "input,blur")
        - FORMTREE_VALIDATE_CONDITIONS: comma separated condition names
        - FORMTREE_VALIDATE_DEBOUNCE: milliseconds
        - FORMTREE_TOUCH_ON: a single timing
        """
        kwargs: dict = {}

        validate_on = os.environ.get("FORMTREE_VALIDATE_ON")
        if validate_on:
            kwargs["validate_on"] = _split_env(validate_on)

        conditions = os.environ.get("FORMTREE_VALIDATE_CONDITIONS")
        if conditions:
            kwargs["validate_conditions"] = _split_env(conditions)

        debounce = os.environ.get("FORMTREE_VALIDATE_DEBOUNCE")
        if debounce:
            kwargs["validate_debounce"] = int(debounce)

        touch_on = os.environ.get("FORMTREE_TOUCH_ON")
        if touch_on:
            kwargs["touch_on"] = touch_on.strip()

        return cls(**kwargs)
