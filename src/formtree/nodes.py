"""Base class for every node of a form tree."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar

from formtree.config import check_timings
from formtree.errors import FormTreeError
from formtree.registry import NodeRegistry
from formtree.types import PASS_THROUGH_EVENTS, NodeKind, RuleSpec, ValidateCondition

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


class FormNode:
    """Identity, lifecycle, events and rule configuration shared by all nodes.

    A node registers itself with its registry on construction and deregisters
    on ``destroy()``. Capability flags (``is_control``, ``is_composite``,
    ``is_choice``, ``is_value_control``) and ``kind`` identify the variant.

    Rule configuration lives here rather than on controls so that choices can
    contribute validators, timings and debounce to the control that owns them.
    """

    kind: ClassVar[NodeKind]
    is_control: ClassVar[bool] = False
    is_composite: ClassVar[bool] = False
    is_choice: ClassVar[bool] = False
    is_value_control: ClassVar[bool] = False

    def __init__(
        self,
        *,
        name: str | None = None,
        registry: NodeRegistry | None = None,
        rules: RuleSpec | None = None,
        validate_on: str | list[str] | tuple[str, ...] | None = None,
        validate_conditions: ValidateCondition | list[ValidateCondition] | None = None,
        validate_debounce: int | str | None = None,
        required: bool = False,
        disabled: bool = False,
        readonly: bool = False,
        always_value: bool = False,
        tabindex: int = 0,
    ):
        self.id: int | None = None
        self.registry = registry if registry is not None else NodeRegistry()
        self._listeners: dict[str, list[Listener]] = {}
        self._destroyed = False
        self._destroying = False

        self._rules = rules
        self.validate_on = check_timings(validate_on) if validate_on is not None else None
        self.validate_conditions = (
            _as_tuple(validate_conditions) if validate_conditions is not None else None
        )
        self.validate_debounce = int(validate_debounce) if validate_debounce is not None else None
        self.required = required
        self.disabled = disabled
        self.readonly = readonly
        self.always_value = always_value
        self.tabindex = tabindex

        self.registry.register(self)
        self.name = name if name is not None else self._default_name()

    def _default_name(self) -> str:
        return f"form-control-{self.id}"

    @property
    def rules(self) -> RuleSpec | None:
        return self._rules

    @rules.setter
    def rules(self, rules: RuleSpec | None) -> None:
        self._rules = rules
        self._after_rules_change()

    def _after_rules_change(self) -> None:
        """Hook: the node's own rules were reassigned."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} name={self.name!r}>"

    # -------------------------------------------------------------------------
    # Tree position and effective flags
    # -------------------------------------------------------------------------

    @property
    def parent(self) -> FormNode | None:
        return None

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def enabled(self) -> bool:
        return not self.disabled

    @property
    def is_disabled(self) -> bool:
        parent = self.parent
        return self.disabled or (parent is not None and parent.is_disabled)

    @property
    def is_readonly(self) -> bool:
        parent = self.parent
        return self.readonly or (parent is not None and parent.is_readonly)

    @property
    def is_enabled(self) -> bool:
        return not self.is_disabled

    @property
    def is_operational(self) -> bool:
        """Enabled and writable: the UI may accept input."""
        return self.is_enabled and not self.is_readonly

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(event, [])
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Remove one listener, or every listener of the event."""
        if listener is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, *args: Any) -> None:
        """Call the event's listeners, then forward UI events up the tree."""
        for listener in list(self._listeners.get(event, [])):
            listener(*args)
        if event in PASS_THROUGH_EVENTS:
            target = self._pass_through_target()
            if target is not None:
                target.emit(event, *args)

    def _pass_through_target(self) -> FormNode | None:
        return self.parent

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def destroy(self) -> None:
        """Detach and deregister the node. Safe to call more than once."""
        if self._destroyed or self._destroying:
            return
        self._destroying = True
        self._before_destroy()
        self.registry.deregister(self)
        self._destroyed = True
        self._listeners.clear()

    def _before_destroy(self) -> None:
        """Hook for subclasses to release relations before deregistration."""

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise FormTreeError(f"{self!r} has been destroyed")
