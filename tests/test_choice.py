"""Tests for choices and choice controls."""

import asyncio

import pytest

from formtree import Choice, ChoiceControl, Form, FormControl, NodeRegistry
from formtree.errors import ChoiceConfigError, RuleResolutionError
from formtree.rules import reset_default_registry


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_validator_registry():
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture
def registry():
    registry = NodeRegistry()
    yield registry
    registry.reset_all()


@pytest.fixture
def radios(registry):
    """A single-select control with three options."""
    control = ChoiceControl(name="size", registry=registry)
    choices = [Choice(value, control=control) for value in ("s", "m", "l")]
    return control, choices


@pytest.fixture
def checkboxes(registry):
    """A multi-select control with three options."""
    control = ChoiceControl(name="tags", multiple=True, registry=registry)
    choices = [Choice(value, control=control) for value in ("a", "b", "c")]
    return control, choices


# =============================================================================
# Single select
# =============================================================================


class TestSingleSelect:
    def test_starts_with_nothing_selected(self, radios):
        control, choices = radios
        assert control.value is None
        assert control.choiced_choices == []
        assert control.unchoiced_choices == choices

    def test_choice_selects_exactly_one(self, radios):
        control, choices = radios
        for choice in choices:
            choice.choice()
            assert [c for c in choices if c.choiced] == [choice]
            assert control.value == choice.value

    def test_value_update_emitted_once_per_selection(self, radios):
        control, (small, medium, _) = radios
        updates = []
        control.on("value_update", updates.append)
        small.choice()
        medium.choice()
        medium.choice()
        assert updates == ["s", "m"]

    def test_sibling_deselection_is_silent(self, radios):
        control, (small, medium, _) = radios
        small.choice()
        changes = []
        small.on("choiced_change", changes.append)
        updates = []
        control.on("value_update", updates.append)
        medium.choice()
        assert changes == [False]
        assert updates == ["m"]

    def test_unchoice_clears_value(self, radios):
        control, (small, _, _) = radios
        small.choice()
        small.unchoice()
        assert control.value is None

    def test_toggle(self, radios):
        control, (small, _, _) = radios
        small.toggle()
        assert small.choiced
        small.toggle()
        assert not small.choiced

    def test_value_setter_selects_matching_choice(self, radios):
        control, (small, medium, large) = radios
        control.value = "l"
        assert [c.choiced for c in (small, medium, large)] == [False, False, True]
        control.value = None
        assert control.choiced_choices == []

    def test_value_setter_with_unknown_value(self, radios):
        control, _ = radios
        control.value = "xl"
        assert control.value is None

    def test_aliases(self, radios):
        control, (small, medium, large) = radios
        small.check()
        assert small.checked and small.selected
        medium.select()
        assert control.value == "m"
        medium.deselect()
        large.checked = True
        assert control.value == "l"
        large.uncheck()
        assert control.value is None

    def test_siblings(self, radios):
        _, (small, medium, large) = radios
        assert small.siblings == [medium, large]


# =============================================================================
# Multiple select
# =============================================================================


class TestMultipleSelect:
    def test_value_is_list_in_choice_order(self, checkboxes):
        control, (a, b, c) = checkboxes
        c.choice()
        a.choice()
        assert control.value == ["a", "c"]
        assert c.choiced and a.choiced

    def test_value_setter(self, checkboxes):
        control, (a, b, c) = checkboxes
        control.value = ["b", "c"]
        assert [x.choiced for x in (a, b, c)] == [False, True, True]
        control.value = None
        assert control.value == []

    def test_multiple_inherited_from_control(self, checkboxes):
        _, choices = checkboxes
        assert all(c.multiple for c in choices)

    def test_mismatch_raises(self, checkboxes, registry):
        control, _ = checkboxes
        with pytest.raises(ChoiceConfigError):
            Choice("d", control=control, multiple=False)
        assert len(control.choices) == 3
        assert len(registry.choices) == 3


# =============================================================================
# Attaching
# =============================================================================


class TestAttach:
    def test_implicit_control_created(self):
        choice = Choice("yes")
        control = choice.control
        assert isinstance(control, ChoiceControl)
        assert control.auto_destroy
        assert control.registry is choice.registry
        assert control.name == choice.name == f"form-choice-{choice.id}"
        choice.registry.reset_all()

    def test_control_found_by_name_in_form(self, registry):
        form = Form(registry=registry)
        first = Choice("a", form=form, name="pick")
        second = Choice("b", form=form, name="pick")
        assert first.control is second.control
        assert form.find("pick") is first.control
        assert not first.control.choiced_choices

    def test_name_taken_by_non_choice_control(self, registry):
        form = Form(registry=registry)
        FormControl(name="pick", parent=form)
        with pytest.raises(ChoiceConfigError):
            Choice("a", form=form, name="pick")
        assert registry.choices == []

    def test_control_must_be_choice_control(self, registry):
        plain = FormControl(registry=registry)
        with pytest.raises(ChoiceConfigError):
            Choice("a", control=plain)

    def test_mismatch_with_found_control_keeps_it(self, registry):
        form = Form(registry=registry)
        Choice("a", form=form, name="pick", multiple=True)
        with pytest.raises(ChoiceConfigError):
            Choice("b", form=form, name="pick")
        assert len(registry.choice_controls) == 1
        assert len(registry.choices) == 1

    def test_bound_value_selects_attaching_choices(self, registry):
        control = ChoiceControl(value="m", registry=registry)
        assert control.dirty
        small = Choice("s", control=control)
        medium = Choice("m", control=control)
        assert not small.choiced
        assert medium.choiced
        assert control.value == "m"
        assert control.pristine

    def test_bound_value_multiple(self, registry):
        control = ChoiceControl(value=["a", "c"], multiple=True, registry=registry)
        choices = [Choice(v, control=control) for v in ("a", "b", "c")]
        assert [c.choiced for c in choices] == [True, False, True]
        assert control.pristine

    def test_initially_choiced_commits_initial_value(self, radios):
        control, _ = radios
        extra = Choice("xl", control=control, choiced=True)
        assert control.value == "xl"
        assert control.initial_value == "xl"
        assert control.pristine
        assert extra.choiced

    def test_invalid_choice_rules_fail_fast(self, radios, registry):
        control, _ = radios
        with pytest.raises(RuleResolutionError):
            Choice("x", control=control, rules="bogus")
        assert len(control.choices) == 3


# =============================================================================
# Detaching and destruction
# =============================================================================


class TestDestroy:
    def test_destroying_selected_choice_updates_value(self, radios):
        control, (small, _, _) = radios
        small.choice()
        small.destroy()
        assert control.value is None
        assert small.control is None
        assert len(control.choices) == 2

    def test_auto_destroy_with_last_choice(self, registry):
        form = Form(registry=registry)
        first = Choice("a", form=form, name="pick")
        second = Choice("b", form=form, name="pick")
        control = first.control
        first.destroy()
        assert not control.is_destroyed
        second.destroy()
        assert control.is_destroyed
        assert form.find("pick") is None

    def test_explicit_control_survives_last_choice(self, radios):
        control, choices = radios
        for choice in choices:
            choice.destroy()
        assert not control.is_destroyed
        assert control.choices == ()

    def test_destroying_control_destroys_choices(self, radios, registry):
        control, choices = radios
        control.destroy()
        assert all(c.is_destroyed for c in choices)
        assert len(registry) == 0


# =============================================================================
# Rule contribution
# =============================================================================


class TestMergedConfiguration:
    def test_choice_rules_merged_without_duplicates(self, registry):
        control = ChoiceControl(rules="required", registry=registry)
        Choice("a", control=control, rules="required")
        Choice("b", control=control, rules="exclude('b')")
        names = [f.__name__ for f in control.computed_rules]
        assert names == ["_required", "validate_exclude"]

    def test_validate_on_merged(self, registry):
        control = ChoiceControl(registry=registry)
        Choice("a", control=control, validate_on="blur")
        assert control.computed_validate_on == ("change", "blur")

    def test_debounce_is_max_across_choices(self, registry):
        control = ChoiceControl(validate_debounce=5, registry=registry)
        Choice("a", control=control, validate_debounce=30)
        Choice("b", control=control)
        assert control.computed_validate_debounce == 30

    @pytest.mark.asyncio
    async def test_choice_rule_applies_to_control(self, radios):
        control, (small, _, _) = radios
        Choice("xl", control=control, rules="exclude('xl')")
        control.value = "xl"
        errors = await control.validate_self()
        assert errors == [{"exclude": {"excludes": ["xl"], "actual_value": "xl"}}]

    @pytest.mark.asyncio
    async def test_choice_rules_reassigned_rerun_control(self, radios):
        control, (small, _, _) = radios
        control.value = "s"
        assert await control.validate_self() == []
        small.rules = "exclude('s')"
        assert await control.validate_self() == [{"exclude": {"excludes": ["s"], "actual_value": "s"}}]

    @pytest.mark.asyncio
    async def test_attached_choice_rules_rerun_control(self, radios):
        control, _ = radios
        control.value = "m"
        assert await control.validate_self() == []
        Choice("xl", control=control, rules="exclude('m')")
        assert await control.validate_self() == [{"exclude": {"excludes": ["m"], "actual_value": "m"}}]

    @pytest.mark.asyncio
    async def test_required_without_selection(self, registry):
        control = ChoiceControl(multiple=True, required=True, registry=registry)
        Choice("a", control=control)
        assert await control.validate_self() == [{"required": True}]


# =============================================================================
# Events and flags
# =============================================================================


class TestChoiceEvents:
    @pytest.mark.asyncio
    async def test_change_on_choice_touches_and_validates_control(self, registry):
        control = ChoiceControl(rules="required", registry=registry)
        choice = Choice("a", control=control)
        choice.emit("change")
        assert control.touched
        for _ in range(5):
            await asyncio.sleep(0)
        assert control.errors == [{"required": True}]

        choice.choice()
        for _ in range(5):
            await asyncio.sleep(0)
        assert control.valid

    def test_focus_passes_through_to_control(self, radios):
        control, (small, _, _) = radios
        focused = []
        control.on("focus", lambda: focused.append(True))
        small.emit("focus")
        assert focused == [True]

    def test_disabled_choice_excluded_from_form_value(self, checkboxes):
        control, (a, b, _) = checkboxes
        a.choice()
        b.choice()
        b.disabled = True
        assert control.form_value == ["a"]
        assert control.value == ["a", "b"]

    def test_disabled_control_disables_choices(self, radios):
        control, choices = radios
        control.disabled = True
        assert all(c.is_disabled for c in choices)
