"""Composite controls: arrays, groups and forms.

A composite owns child controls and derives its value, pristine/touched
flags and validation state from them. Children attach with
``Composite.add_control(child)`` (or ``parent=`` / ``child.parent = ...``)
and detach with ``remove_control``; both sides of the relation always change
together.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from formtree import paths
from formtree.control import Control
from formtree.errors import FormTreeError
from formtree.types import ErrorRecord, NodeKind, ValidateState

logger = logging.getLogger(__name__)

SELF_ERRORS_KEY = "_self"


class CompositeControl(Control):
    """Base for controls composed of child controls.

    Subclasses decide how children are keyed (by index or by name) and how
    child values are packed into the composite value.
    """

    is_composite = True

    def __init__(self, **kwargs):
        self._tearing_down = False
        self._last_pristine = True
        self._last_touched = False
        super().__init__(**kwargs)

    # -------------------------------------------------------------------------
    # Membership (implemented by subclasses)
    # -------------------------------------------------------------------------

    @property
    def control_list(self) -> list[Control]:
        raise NotImplementedError

    def key_of(self, child: Control) -> str | None:
        raise NotImplementedError

    def child_at(self, key: paths.PathKey) -> Control | None:
        raise NotImplementedError

    def _insert(self, child: Control) -> None:
        raise NotImplementedError

    def _discard(self, child: Control) -> None:
        raise NotImplementedError

    def _contains(self, child: Control) -> bool:
        return any(c is child for c in self.control_list)

    def add_control(self, child: Control) -> None:
        """Attach ``child``, detaching it from its current parent first.

        Raises:
            FormTreeError: If either node is destroyed, the child belongs to
                another registry, or attaching would create a cycle
        """
        self._ensure_alive()
        child._ensure_alive()
        if child.registry is not self.registry:
            raise FormTreeError(f"Cannot add {child!r} from another registry to {self!r}")
        node: Control | None = self
        while node is not None:
            if node is child:
                raise FormTreeError(f"Adding {child!r} to {self!r} would create a cycle")
            node = node.parent

        current = child.parent
        if current is self:
            return
        if current is not None:
            current.remove_control(child)

        self._insert(child)
        child._parent_ref = weakref.ref(self)
        logger.debug("Attached %s to %s", child, self)
        self._after_membership_change(child)

    def remove_control(self, child: Control) -> None:
        """Detach ``child``; controls that are not children are ignored."""
        if not self._contains(child):
            return
        self._discard(child)
        child._parent_ref = None
        logger.debug("Detached %s from %s", child, self)
        self._after_membership_change(child)

    def _after_membership_change(self, child: Control) -> None:
        if self._tearing_down:
            return
        self._after_value_change()
        self._on_child_state_change(child)
        if child.has_error or (child.is_composite and child.all_errors):
            self._on_descendant_errors_change()

    def each_control(self, fn: Callable[[Control], Any]) -> None:
        for child in self.control_list:
            fn(child)

    def all_controls(self) -> list[Control]:
        """This composite followed by every descendant, depth first."""
        result: list[Control] = [self]
        for child in self.control_list:
            if child.is_composite:
                result.extend(child.all_controls())
            else:
                result.append(child)
        return result

    def find(self, path: Any) -> Control | None:
        """Resolve a path such as ``addresses[0].zip``; None if any step is missing."""
        return paths.find(self, path)

    def find_by_name(self, name: str) -> Control | None:
        """First descendant with the given name, depth first."""
        for control in self.all_controls()[1:]:
            if control.name == name:
                return control
        return None

    # -------------------------------------------------------------------------
    # Derived value and state
    # -------------------------------------------------------------------------

    def get_value(self, force: bool | None = None) -> Any:
        if force is None:
            force = self.always_value
        if not force and self.is_disabled:
            return None
        return self._pack([(self.key_of(c), c.value) for c in self.control_list if force or not c.is_disabled])

    def _pack(self, items: list[tuple[str | None, Any]]) -> Any:
        raise NotImplementedError

    @Control.value.setter
    def value(self, value: Any) -> None:
        self.set_value(value)

    def set_value(self, value: Any) -> None:
        raise NotImplementedError

    @property
    def pristine(self) -> bool:
        return all(c.pristine for c in self.control_list)

    @property
    def touched(self) -> bool:
        return any(c.touched for c in self.control_list)

    @property
    def validate_state(self) -> ValidateState:
        """PENDING if anything below is pending, else INVALID if anything is invalid."""
        states = [self._validate_state] + [c.validate_state for c in self.control_list]
        if ValidateState.PENDING in states:
            return ValidateState.PENDING
        if ValidateState.INVALID in states:
            return ValidateState.INVALID
        return ValidateState.VALID

    @property
    def some_control_is_pending(self) -> bool:
        return any(c.pending for c in self.control_list)

    @property
    def all_errors(self) -> dict[str, list[ErrorRecord]] | None:
        """Errors of this composite and every descendant, keyed by path.

        The composite's own errors are filed under ``_self``. Returns None
        when nothing has errors.
        """
        result: dict[str, list[ErrorRecord]] = {}
        for control in self.all_controls():
            if not control.has_error:
                continue
            key = control.path_from(self) or SELF_ERRORS_KEY
            result.setdefault(key, []).extend(control.errors)
        return result or None

    def _on_child_value_change(self, child: Control) -> None:
        self.emit("value_update", self.value)
        self._after_value_change()

    def _on_child_state_change(self, child: Control) -> None:
        pristine, touched = self.pristine, self.touched
        if (pristine, touched) == (self._last_pristine, self._last_touched):
            return
        if touched != self._last_touched:
            self.emit("touched_change", touched)
        self._last_pristine, self._last_touched = pristine, touched
        self._after_state_change()

    def _after_errors_change(self) -> None:
        self.emit("errors_change", self.errors)
        self._on_descendant_errors_change()

    def _on_descendant_errors_change(self) -> None:
        self.emit("all_errors_change", self.all_errors)
        parent = self.parent
        if parent is not None:
            parent._on_descendant_errors_change()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def validate_all(self) -> dict[str, list[ErrorRecord]] | None:
        """Validate this composite and every descendant concurrently.

        Returns:
            The path-keyed error map, or None if everything is valid
        """
        await asyncio.gather(*(c.validate_self() for c in self.all_controls()))
        return self.all_errors

    def clear(self, clear_errors: bool = True) -> None:
        """Clear every child and, unless told otherwise, this composite's errors."""
        for child in self.control_list:
            child.clear(clear_errors)
        if clear_errors:
            self.clear_errors()

    def reset(self) -> None:
        for child in self.control_list:
            child.reset()

    def update_initial_value(self) -> None:
        for child in self.control_list:
            child.update_initial_value()

    commit = update_initial_value

    def _before_destroy(self) -> None:
        self._tearing_down = True
        for child in list(self.control_list):
            child.destroy()
        super()._before_destroy()


class FormArray(CompositeControl):
    """Children keyed by position; the value is a list."""

    kind = NodeKind.FORM_ARRAY

    def __init__(self, **kwargs):
        self._controls: list[Control] = []
        super().__init__(**kwargs)

    @property
    def controls(self) -> tuple[Control, ...]:
        return tuple(self._controls)

    @property
    def control_list(self) -> list[Control]:
        return list(self._controls)

    def __len__(self) -> int:
        return len(self._controls)

    def at(self, index: int) -> Control | None:
        if 0 <= index < len(self._controls):
            return self._controls[index]
        return None

    def index_of(self, child: Control) -> int:
        for index, control in enumerate(self._controls):
            if control is child:
                return index
        return -1

    def key_of(self, child: Control) -> str | None:
        index = self.index_of(child)
        return f"[{index}]" if index >= 0 else None

    def child_at(self, key: paths.PathKey) -> Control | None:
        if isinstance(key, str):
            if not key.isdigit():
                return None
            key = int(key)
        return self.at(key)

    def _insert(self, child: Control) -> None:
        self._controls.append(child)

    def _discard(self, child: Control) -> None:
        self._controls.pop(self.index_of(child))

    def _pack(self, items: list[tuple[str | None, Any]]) -> list:
        return [value for _, value in items]

    def set_value(self, value: Any) -> None:
        """Assign ``value[i]`` to the i-th child; missing entries clear the child."""
        values = list(value or [])
        for index, child in enumerate(self.control_list):
            child.value = values[index] if index < len(values) else None


class FormGroup(CompositeControl):
    """Children keyed by unique name; the value is a dict."""

    kind = NodeKind.FORM_GROUP

    def __init__(self, **kwargs):
        self._controls: dict[str, Control] = {}
        super().__init__(**kwargs)

    @property
    def controls(self) -> Mapping[str, Control]:
        return MappingProxyType(self._controls)

    @property
    def control_list(self) -> list[Control]:
        return list(self._controls.values())

    def __len__(self) -> int:
        return len(self._controls)

    def __getitem__(self, name: str) -> Control:
        return self._controls[name]

    def key_of(self, child: Control) -> str | None:
        return child.name if self._controls.get(child.name) is child else None

    def child_at(self, key: paths.PathKey) -> Control | None:
        return self._controls.get(str(key))

    def _contains(self, child: Control) -> bool:
        return self._controls.get(child.name) is child

    def _insert(self, child: Control) -> None:
        if not paths.is_valid_key(child.name):
            raise FormTreeError(
                f"{child!r} can not join {self!r}: group keys must be non-empty and free of '.', '[' and ']'"
            )
        if child.name in self._controls:
            raise FormTreeError(f"{self!r} already has a control named '{child.name}'")
        self._controls[child.name] = child

    def _discard(self, child: Control) -> None:
        del self._controls[child.name]

    def _pack(self, items: list[tuple[str | None, Any]]) -> dict[str, Any]:
        return dict(items)

    def set_value(self, value: Mapping[str, Any] | None) -> None:
        """Assign ``value[name]`` to each child; missing names clear the child."""
        values = value or {}
        for name, child in list(self._controls.items()):
            child.value = values.get(name)


class Form(FormGroup):
    """Root group of a form tree.

    Example:
        form = Form()
        FormControl(name="email", rules="required|email", parent=form)
        errors = await form.validate_all()
    """

    kind = NodeKind.FORM
