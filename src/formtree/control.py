"""Controls: form nodes that own a value and run validation.

Validation pipeline
-------------------
``validate_self()`` returns an asyncio future resolved with the control's
error list. A run is skipped (and the current errors returned) when nothing
changed since the last finished run. Otherwise a new request id is issued,
the state becomes PENDING and the resolved validators run one after another
in a task. A run whose request id has been superseded stops at its next
check point and leaves its waiters to the newer run.

Runs are also started automatically by the control's trigger timings
(``emit("change")`` etc.), by ``touched``/``pristine`` changes and by value
changes of watched controls, once every validate condition holds and the
debounce delay has passed.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from formtree import paths
from formtree.config import check_timings
from formtree.errors import FormTreeError, RuleResolutionError
from formtree.nodes import FormNode, _as_tuple
from formtree.rules.util import parse_float
from formtree.types import (
    VALIDATE_TIMINGS,
    ErrorRecord,
    FileInfo,
    FileInspector,
    ImageFileInfo,
    NodeKind,
    ValidateConditionChecker,
    ValidateState,
    ValidatorFn,
)

if TYPE_CHECKING:
    from formtree.group import CompositeControl
    from formtree.rules.registry import ValidatorRegistry

logger = logging.getLogger(__name__)


def _always(control: Control) -> bool:
    return True


def _attribute_condition(name: str) -> ValidateConditionChecker:
    def check(control: Control) -> bool:
        return bool(getattr(control, name, False))

    check.__name__ = f"is_{name}"
    return check


def _validator_name(fn: Callable) -> str:
    return getattr(fn, "__name__", None) or type(fn).__name__


class Control(FormNode):
    """A form node with a value, an error list and a validation state.

    Args:
        parent: Composite to attach to; the control then shares its registry
        registry: Node registry for a control without a parent
        **kwargs: Rule configuration and flags, see FormNode
    """

    is_control = True

    def __init__(self, *, parent: CompositeControl | None = None, registry=None, **kwargs):
        if registry is None and parent is not None:
            registry = parent.registry

        self._parent_ref: weakref.ref | None = None
        self._errors: list[ErrorRecord] = []
        self._validate_state = ValidateState.VALID
        self._value_changed = True
        self._request_id = 0
        self._waiters: list[asyncio.Future] = []
        self._debounce_handle: asyncio.TimerHandle | None = None

        super().__init__(registry=registry, **kwargs)

        try:
            self.computed_rules
        except RuleResolutionError:
            self.destroy()
            raise

        for timing in VALIDATE_TIMINGS:
            self.on(timing, partial(self._on_timing_event, timing))

        if parent is not None:
            try:
                self.parent = parent
            except FormTreeError:
                self.destroy()
                raise

    # -------------------------------------------------------------------------
    # Tree position
    # -------------------------------------------------------------------------

    @property
    def parent(self) -> CompositeControl | None:
        return self._parent_ref() if self._parent_ref is not None else None

    @parent.setter
    def parent(self, parent: CompositeControl | None) -> None:
        current = self.parent
        if current is parent:
            return
        if current is not None:
            current.remove_control(self)
        if parent is not None:
            parent.add_control(self)

    @property
    def root(self) -> Control:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def key_from_parent(self) -> str | None:
        """``[i]`` inside an array, the name inside a group, None when detached."""
        parent = self.parent
        return parent.key_of(self) if parent is not None else None

    def path_from(self, ancestor: CompositeControl) -> str | None:
        """Path of this control relative to ``ancestor``, e.g. ``addresses[0].zip``."""
        return paths.path_between(ancestor, self)

    # -------------------------------------------------------------------------
    # Value (overridden by concrete controls)
    # -------------------------------------------------------------------------

    def get_value(self, force: bool | None = None) -> Any:
        raise NotImplementedError

    @property
    def value(self) -> Any:
        return self.get_value(True)

    @property
    def form_value(self) -> Any:
        """The value as submitted: None for a disabled control unless always_value."""
        return self.get_value()

    @property
    def pristine(self) -> bool:
        raise NotImplementedError

    @property
    def touched(self) -> bool:
        raise NotImplementedError

    @property
    def dirty(self) -> bool:
        return not self.pristine

    @property
    def untouched(self) -> bool:
        return not self.touched

    @property
    def numbered_value(self) -> Any:
        value = self.value
        if isinstance(value, (list, tuple)):
            return [parse_float(v) or 0.0 for v in value]
        return parse_float(value) or 0.0

    @property
    def string_value(self) -> Any:
        value = self.value
        if isinstance(value, (list, tuple)):
            return ["" if v is None else str(v) for v in value]
        return "" if value is None else str(value)

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    @property
    def file_inspector(self) -> FileInspector:
        return self.registry.file_inspector

    @property
    def files(self) -> list[Any]:
        """The values of this control that the file inspector recognises as files."""
        value = self.value
        if value is None:
            return []
        items = value if isinstance(value, (list, tuple)) else [value]
        inspector = self.file_inspector
        return [item for item in items if inspector.is_file(item)]

    @property
    def file_infos(self) -> list[FileInfo]:
        inspector = self.file_inspector
        return [inspector.describe_file(f) for f in self.files]

    async def image_file_infos(self) -> list[ImageFileInfo]:
        inspector = self.file_inspector
        return list(await asyncio.gather(*(inspector.describe_image_file(f) for f in self.files)))

    # -------------------------------------------------------------------------
    # Validation state
    # -------------------------------------------------------------------------

    @property
    def errors(self) -> list[ErrorRecord]:
        return list(self._errors)

    @property
    def validate_state(self) -> ValidateState:
        return self._validate_state

    def _set_validate_state(self, state: ValidateState) -> None:
        if state is self._validate_state:
            return
        self._validate_state = state
        self.emit("validate_state_change", state)

    @property
    def valid(self) -> bool:
        return self.validate_state is ValidateState.VALID

    @property
    def invalid(self) -> bool:
        return self.validate_state is ValidateState.INVALID

    @property
    def pending(self) -> bool:
        return self.validate_state is ValidateState.PENDING

    @property
    def has_error(self) -> bool:
        return bool(self._errors)

    # -------------------------------------------------------------------------
    # Effective rule configuration
    # -------------------------------------------------------------------------

    @property
    def validators(self) -> ValidatorRegistry:
        return self.registry.validators

    def _rule_sources(self) -> list[FormNode]:
        """Nodes whose rule configuration is merged into this control's."""
        return [self]

    def _merged(self, attribute: str, own_default: Any = None) -> list:
        merged: list = []
        for source in self._rule_sources():
            value = getattr(source, attribute)
            if value is None and source is self:
                value = own_default
            for item in _as_tuple(value):
                if item not in merged:
                    merged.append(item)
        return merged

    @property
    def computed_rules(self) -> list[ValidatorFn]:
        """Validator functions for the merged rules, in declaration order.

        Raises:
            RuleResolutionError: If any rule cannot be resolved
        """
        return self.validators.resolve(self._merged("rules"), required=self.required)

    @property
    def computed_validate_on(self) -> tuple[str, ...]:
        return check_timings(self._merged("validate_on", self.registry.config.validate_on))

    @property
    def computed_validate_conditions(self) -> list[ValidateConditionChecker]:
        checkers: list[ValidateConditionChecker] = []
        for condition in self._merged("validate_conditions", self.registry.config.validate_conditions):
            if callable(condition):
                checkers.append(condition)
            elif condition == "always":
                checkers.append(_always)
            else:
                checkers.append(_attribute_condition(str(condition)))
        return checkers

    @property
    def computed_validate_debounce(self) -> int:
        """Largest debounce, in milliseconds, among this control and its rule sources."""
        delays = []
        for source in self._rule_sources():
            delay = source.validate_debounce
            if delay is None and source is self:
                delay = self.registry.config.validate_debounce
            if delay is not None:
                delays.append(delay)
        return max(delays, default=0)

    # -------------------------------------------------------------------------
    # Watch relations
    # -------------------------------------------------------------------------

    def watch(self, other: Control) -> None:
        """Re-run this control's validation whenever ``other`` changes value."""
        if other is self:
            return
        if other.registry is not self.registry:
            raise FormTreeError(f"{self!r} cannot watch {other!r} from another registry")
        if self.registry.watches.add(self, other):
            logger.debug("%s now watches %s", self, other)

    def unwatch(self, other: Control) -> None:
        self.registry.watches.remove(self, other)

    @property
    def watchers(self) -> list[Control]:
        return self.registry.watches.watchers_of(self)

    @property
    def watching(self) -> list[Control]:
        return self.registry.watches.watched_by(self)

    def _on_watched_value_change(self, watched: Control) -> None:
        if self._destroyed:
            return
        self._value_changed = True
        self.emit("watched_value_change", watched)
        self._validate_on_handler()

    # -------------------------------------------------------------------------
    # Change propagation
    # -------------------------------------------------------------------------

    def _after_rules_change(self) -> None:
        self._value_changed = True

    def _after_value_change(self) -> None:
        self._value_changed = True
        self.registry.watches.notify(self)
        parent = self.parent
        if parent is not None:
            parent._on_child_value_change(self)

    def _after_state_change(self) -> None:
        """touched or pristine changed."""
        self._validate_on_handler()
        parent = self.parent
        if parent is not None:
            parent._on_child_state_change(self)

    def _after_errors_change(self) -> None:
        self.emit("errors_change", self.errors)
        parent = self.parent
        if parent is not None:
            parent._on_descendant_errors_change()

    # -------------------------------------------------------------------------
    # Triggers and debounce
    # -------------------------------------------------------------------------

    def _on_timing_event(self, timing: str, *args: Any) -> None:
        if timing in self.computed_validate_on:
            self._validate_on_handler()

    def _validate_on_handler(self) -> None:
        if self._destroyed or self._destroying:
            return
        for checker in self.computed_validate_conditions:
            if not checker(self):
                return
        self._schedule_validation(self.computed_validate_debounce)

    def _schedule_validation(self, delay: int) -> None:
        self._cancel_debounce()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, validation of %s not scheduled", self)
            return
        if delay <= 0:
            self.validate_self()
            return
        logger.debug("Validation of %s debounced for %sms", self, delay)
        self._debounce_handle = loop.call_later(delay / 1000, self._on_debounce_elapsed)

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None
        if not self._destroyed:
            self.validate_self()

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_self(self) -> asyncio.Future:
        """Validate this control with its merged rules.

        Must be called with an event loop running. The returned future
        resolves with the error list of the run that finishes last, or
        immediately when nothing changed since the previous run.

        Raises:
            RuleResolutionError: If the rules cannot be resolved
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        own_pending = self._validate_state is ValidateState.PENDING

        if self._destroyed or (not self._value_changed and not own_pending):
            waiter.set_result(self.errors)
            return waiter

        self._waiters.append(waiter)
        if not self._value_changed:
            return waiter

        try:
            validators = self.computed_rules
        except RuleResolutionError:
            self._waiters.remove(waiter)
            raise

        self._value_changed = False
        self._request_id += 1
        request_id = self._request_id
        self._set_validate_state(ValidateState.PENDING)
        logger.debug("Validating %s (request %s, %s validators)", self, request_id, len(validators))
        loop.create_task(self._run_validation(request_id, validators))
        return waiter

    async def _run_validation(self, request_id: int, validators: list[ValidatorFn]) -> None:
        collected: list[ErrorRecord] = []

        for validator in validators:
            if request_id != self._request_id:
                logger.debug("Validation request %s of %s superseded", request_id, self)
                return
            if self._destroyed:
                break
            try:
                result = validator(self)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.warning(
                    "Validator %s of %s raised %s: %s", _validator_name(validator), self, type(e).__name__, e
                )
                collected.append({type(e).__name__ or "exception": e})
                continue
            if result:
                collected.append(result)

        if request_id != self._request_id:
            logger.debug("Validation request %s of %s superseded", request_id, self)
            return
        if self._destroyed:
            collected = []

        self._finish_validation(collected)

    def _finish_validation(self, errors: list[ErrorRecord]) -> None:
        changed = errors != self._errors
        self._errors = errors
        self._set_validate_state(ValidateState.INVALID if errors else ValidateState.VALID)
        logger.debug("Validated %s: %s error(s)", self, len(errors))
        self._resolve_waiters()
        if changed:
            self._after_errors_change()

    def _resolve_waiters(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(self.errors)

    def clear_errors(self) -> None:
        """Drop errors, cancel any in-flight run and resolve its waiters."""
        if self._validate_state is ValidateState.PENDING:
            self._value_changed = True
        self._request_id += 1
        had_errors = bool(self._errors)
        self._errors = []
        self._set_validate_state(ValidateState.VALID)
        self._resolve_waiters()
        if had_errors:
            self._after_errors_change()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _before_destroy(self) -> None:
        self._cancel_debounce()
        self.registry.watches.remove_node(self)
        self._resolve_waiters()
        self.parent = None


class ValueControl(Control):
    """A control holding its own (possibly multiple) value.

    Tracks ``touched`` (set by the ``touch_on`` event) and ``pristine``
    (value equals the initial value).
    """

    is_value_control = True

    def __init__(
        self,
        *,
        value: Any = None,
        multiple: bool = False,
        touch_on: str | None = None,
        **kwargs,
    ):
        self.multiple = multiple
        self._touched = False
        self._touch_on = check_timings(touch_on)[0] if touch_on is not None else None
        self._init_value(value)
        self._initial_value = self._clone(self._normalize(value))

        super().__init__(**kwargs)

        self.on(self.touch_on, self._mark_touched)

    def _init_value(self, value: Any) -> None:
        """Store the constructor value before the node is registered."""

    @property
    def default_value(self) -> Any:
        return [] if self.multiple else None

    def _normalize(self, value: Any) -> Any:
        if value is None:
            return self._clone(self.default_value)
        if self.multiple:
            if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
                return [value]
            return list(value)
        return value

    def _clone(self, value: Any) -> Any:
        if self.multiple and value is not None:
            return list(value)
        return value

    def _is_equal(self, a: Any, b: Any) -> bool:
        if self.multiple:
            return list(a or []) == list(b or [])
        return a == b

    @property
    def touch_on(self) -> str:
        return self._touch_on or self.registry.config.touch_on

    # -------------------------------------------------------------------------
    # Touched / pristine
    # -------------------------------------------------------------------------

    @property
    def touched(self) -> bool:
        return self._touched

    @touched.setter
    def touched(self, touched: bool) -> None:
        touched = bool(touched)
        if touched == self._touched:
            return
        self._touched = touched
        self.emit("touched_change", touched)
        self._after_state_change()

    def _mark_touched(self, *args: Any) -> None:
        self.touched = True

    @property
    def pristine(self) -> bool:
        return self._is_equal(self.value, self._initial_value)

    @property
    def initial_value(self) -> Any:
        return self._clone(self._initial_value)

    @initial_value.setter
    def initial_value(self, value: Any) -> None:
        was_pristine = self.pristine
        self._initial_value = self._clone(self._normalize(value))
        if self.pristine != was_pristine:
            self._after_state_change()

    def update_initial_value(self) -> None:
        """Commit the current value as the new initial value."""
        self.initial_value = self.value

    commit = update_initial_value

    # -------------------------------------------------------------------------
    # Value operations
    # -------------------------------------------------------------------------

    @Control.value.setter
    def value(self, value: Any) -> None:
        self._ensure_alive()
        self._set_value(value)

    def _set_value(self, value: Any) -> None:
        raise NotImplementedError

    def clear(self, clear_errors: bool = True) -> None:
        """Set the default value and, unless told otherwise, drop errors."""
        self.value = self._clone(self.default_value)
        if clear_errors:
            self.clear_errors()

    def reset(self) -> None:
        """Restore the initial value."""
        self.value = self._clone(self._initial_value)

    def _notify_value_change(self, was_pristine: bool) -> None:
        self.emit("value_update", self.value)
        self._after_value_change()
        if self.pristine != was_pristine:
            self._after_state_change()


class FormControl(ValueControl):
    """A leaf control whose value is stored directly.

    Example:
        form = Form()
        email = FormControl(name="email", rules="required|email", parent=form)
        email.value = "a@b.com"
        errors = await email.validate_self()
    """

    kind = NodeKind.FORM_CONTROL

    def _init_value(self, value: Any) -> None:
        self._value = self._normalize(value)

    def get_value(self, force: bool | None = None) -> Any:
        if force is None:
            force = self.always_value
        if not force and self.is_disabled:
            return None
        return self._value

    def _set_value(self, value: Any) -> None:
        value = self._normalize(value)
        if self._is_equal(self._value, value):
            return
        was_pristine = self.pristine
        self._value = value
        self._notify_value_change(was_pristine)
