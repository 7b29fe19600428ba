"""Choices and the controls they feed.

A Choice is one selectable option (a radio button, a checkbox, an option of
a select). Every choice belongs to exactly one ChoiceControl, whose value is
derived from the choices currently selected:

- single mode: the value of the selected choice, or None
- multiple mode: the list of selected values, in choice order

A choice created without a control looks one up by name in the given form
and, failing that, creates one that is destroyed again when its last choice
leaves.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from formtree.control import ValueControl
from formtree.errors import ChoiceConfigError, FormTreeError
from formtree.nodes import FormNode
from formtree.types import NodeKind

if TYPE_CHECKING:
    from formtree.group import CompositeControl

logger = logging.getLogger(__name__)


class ChoiceControl(ValueControl):
    """A control whose value is derived from its choices' selection state.

    Args:
        auto_destroy: Destroy this control when its last choice is removed
        **kwargs: See ValueControl; ``value`` selects the matching choices
            as they attach
    """

    kind = NodeKind.CHOICE_CONTROL

    def __init__(self, *, auto_destroy: bool = False, **kwargs):
        self._choices: list[Choice] = []
        self.auto_destroy = auto_destroy
        super().__init__(**kwargs)

    def _init_value(self, value: Any) -> None:
        self._bound_value = None if value is None else self._normalize(value)
        self._last_value = self._clone(self.default_value)

    def _rule_sources(self) -> list[FormNode]:
        return [self, *self._choices]

    @property
    def choices(self) -> tuple[Choice, ...]:
        return tuple(self._choices)

    @property
    def choiced_choices(self) -> list[Choice]:
        return [c for c in self._choices if c.choiced]

    @property
    def unchoiced_choices(self) -> list[Choice]:
        return [c for c in self._choices if not c.choiced]

    # -------------------------------------------------------------------------
    # Value
    # -------------------------------------------------------------------------

    def get_value(self, force: bool | None = None) -> Any:
        if force is None:
            force = self.always_value
        if not force and self.is_disabled:
            return None
        chosen = [c.value for c in self._choices if c.choiced and (force or not c.is_disabled)]
        if self.multiple:
            return chosen
        return chosen[0] if chosen else None

    def _set_value(self, value: Any) -> None:
        if self.multiple:
            selected = self._normalize(value)
            for choice in self._choices:
                choice._set_choiced(choice.value in selected, notify=False)
        else:
            matched = False
            for choice in self._choices:
                hit = not matched and value is not None and choice.value == value
                matched = matched or hit
                choice._set_choiced(hit, notify=False)
        self._on_choices_changed()
        self._bound_value = None if value is None else self._normalize(value)

    def _on_choices_changed(self, sync_bound: bool = True) -> None:
        """Recompute the derived value and signal once if it changed."""
        current = self.value
        if sync_bound and self._choices:
            self._bound_value = self._clone(current)
        if self._is_equal(current, self._last_value):
            return
        was_pristine = self._is_equal(self._last_value, self._initial_value)
        self._last_value = self._clone(current)
        self._notify_value_change(was_pristine)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def _add_choice(self, choice: Choice) -> None:
        if choice.multiple != self.multiple:
            raise ChoiceConfigError(
                f"{choice!r} has multiple={choice.multiple} but {self!r} has multiple={self.multiple}"
            )
        if any(c is choice for c in self._choices):
            return
        self._choices.append(choice)
        self._value_changed = True

    def _remove_choice(self, choice: Choice) -> None:
        self._choices = [c for c in self._choices if c is not choice]
        self._value_changed = True
        if self._destroying:
            return
        if choice.choiced:
            self._on_choices_changed()
        if not self._choices and self.auto_destroy:
            logger.debug("Last choice left %s, destroying it", self)
            self.destroy()

    def _before_destroy(self) -> None:
        for choice in list(self._choices):
            choice.destroy()
        super()._before_destroy()


class Choice(FormNode):
    """One selectable option bound to a ChoiceControl.

    Args:
        value: Payload reported by the control while this choice is selected
        control: Owning control; looked up or created when omitted
        form: Composite searched by ``name`` for an owning control, and the
            parent of a control created on demand
        multiple: Must match the control; defaults to the control's mode
        choiced: Select on attach and commit that as the control's initial value
        **kwargs: Rule configuration and flags contributed to the control

    Raises:
        ChoiceConfigError: If the resolved control is not a ChoiceControl or
            its multiple mode differs
    """

    kind = NodeKind.CHOICE
    is_choice = True

    def __init__(
        self,
        value: Any = True,
        *,
        control: ChoiceControl | None = None,
        form: CompositeControl | None = None,
        name: str | None = None,
        multiple: bool | None = None,
        choiced: bool = False,
        registry=None,
        **kwargs,
    ):
        if control is not None and not isinstance(control, ChoiceControl):
            raise ChoiceConfigError(f"Choice can not be paired with {control.kind.value}")

        self.value = value
        self._control: ChoiceControl | None = None
        self._choiced = False

        if control is not None:
            registry = control.registry
            if name is None:
                name = control.name
        elif form is not None:
            registry = form.registry
        if multiple is None:
            multiple = control.multiple if control is not None else False
        self.multiple = bool(multiple)

        super().__init__(name=name, registry=registry, **kwargs)

        try:
            self.registry.validators.resolve(self.rules)
            self._attach(control, form, choiced)
        except FormTreeError:
            self.destroy()
            raise

    def _default_name(self) -> str:
        return f"form-choice-{self.id}"

    def _attach(self, control: ChoiceControl | None, form: CompositeControl | None, choiced: bool) -> None:
        created = False
        if control is None and form is not None:
            found = form.find_by_name(self.name)
            if found is not None:
                if not isinstance(found, ChoiceControl):
                    raise ChoiceConfigError(f"Choice '{self.name}' can not be paired with {found.kind.value}")
                control = found
        if control is None:
            control = ChoiceControl(
                name=self.name,
                multiple=self.multiple,
                required=self.required,
                parent=form,
                registry=self.registry,
                auto_destroy=True,
            )
            created = True
            logger.debug("Created %s for %s", control, self)

        try:
            control._add_choice(self)
        except ChoiceConfigError:
            if created:
                control.destroy()
            raise
        self._control = control

        if choiced:
            self._set_choiced(True)
            control.update_initial_value()
            return

        bound = control._bound_value
        if bound is None:
            return
        if self.multiple:
            should_choice = self.value in bound
        else:
            should_choice = bound == self.value and not control.choiced_choices
        if should_choice:
            self._set_choiced(True, notify=False)
            control._on_choices_changed(sync_bound=False)

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    @property
    def control(self) -> ChoiceControl | None:
        return self._control

    @property
    def parent(self) -> ChoiceControl | None:
        return self._control

    @property
    def siblings(self) -> list[Choice]:
        if self._control is None:
            return []
        return [c for c in self._control.choices if c is not self]

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def choiced(self) -> bool:
        return self._choiced

    @choiced.setter
    def choiced(self, choiced: bool) -> None:
        self._ensure_alive()
        self._set_choiced(choiced)

    def _set_choiced(self, choiced: bool, notify: bool = True) -> None:
        choiced = bool(choiced)
        if choiced == self._choiced:
            return
        self._choiced = choiced
        self.emit("choiced_change", choiced)
        if not notify or self._control is None:
            return
        if choiced and not self.multiple:
            for sibling in self.siblings:
                sibling._set_choiced(False, notify=False)
        self._control._on_choices_changed()

    def choice(self) -> None:
        self.choiced = True

    def unchoice(self) -> None:
        self.choiced = False

    def toggle(self) -> None:
        self.choiced = not self._choiced

    checked = choiced
    selected = choiced
    check = select = choice
    uncheck = deselect = unchoice

    def _after_rules_change(self) -> None:
        if self._control is not None:
            self._control._after_rules_change()

    def _before_destroy(self) -> None:
        control = self._control
        if control is not None:
            control._remove_choice(self)
            self._control = None
