"""Tests for the node registry and the watch graph."""

import pytest

from formtree import Choice, ChoiceControl, Form, FormArray, FormControl, FormGroup, NodeRegistry
from formtree.errors import FormTreeError
from formtree.registry import WatchGraph


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    registry = NodeRegistry()
    yield registry
    registry.reset_all()


# =============================================================================
# Identity and membership
# =============================================================================


class TestNodeIds:
    def test_ids_increase_monotonically(self, registry):
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        c = FormControl(registry=registry)
        assert (a.id, b.id, c.id) == (1, 2, 3)

    def test_create_id_issues_next_id(self, registry):
        assert registry.create_id() == 1
        assert registry.create_id() == 2

    def test_ids_not_reused_while_registry_has_live_nodes(self, registry):
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        b.destroy()
        c = FormControl(registry=registry)
        assert c.id == 3
        assert a.id == 1

    def test_counter_resets_when_registry_empties(self, registry):
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        a.destroy()
        b.destroy()
        assert len(registry) == 0
        c = FormControl(registry=registry)
        assert c.id == 1

    def test_default_name_uses_id(self, registry):
        control = FormControl(registry=registry)
        assert control.name == f"form-control-{control.id}"

    def test_registries_are_independent(self):
        first = NodeRegistry()
        second = NodeRegistry()
        a = FormControl(registry=first)
        b = FormControl(registry=second)
        assert a.id == b.id == 1
        assert a in first and a not in second
        first.reset_all()
        second.reset_all()


class TestRegisterDeregister:
    def test_node_registered_on_creation(self, registry):
        control = FormControl(registry=registry)
        assert control in registry
        assert registry.get(control.id) is control

    def test_register_twice_is_noop(self, registry):
        control = FormControl(registry=registry)
        assert registry.register(control) == control.id
        assert len(registry) == 1

    def test_destroy_deregisters(self, registry):
        control = FormControl(registry=registry)
        control.destroy()
        assert control not in registry
        assert control.is_destroyed

    def test_destroy_is_idempotent(self, registry):
        control = FormControl(registry=registry)
        other = FormControl(registry=registry)
        control.destroy()
        control.destroy()
        assert len(registry) == 1
        assert other in registry

    def test_deregister_unknown_node_is_ignored(self, registry):
        other_registry = NodeRegistry()
        stranger = FormControl(registry=other_registry)
        registry.deregister(stranger)
        assert stranger in other_registry
        other_registry.reset_all()

    def test_reset_all_destroys_every_node(self, registry):
        form = Form(registry=registry)
        control = FormControl(name="email", parent=form)
        registry.reset_all()
        assert len(registry) == 0
        assert form.is_destroyed
        assert control.is_destroyed
        assert FormControl(registry=registry).id == 1

    def test_iteration_in_registration_order(self, registry):
        nodes = [FormControl(registry=registry) for _ in range(3)]
        assert list(registry) == nodes
        assert registry.nodes == nodes

    def test_using_destroyed_node_raises(self, registry):
        control = FormControl(registry=registry)
        control.destroy()
        with pytest.raises(FormTreeError):
            control.value = "x"


class TestTypedViews:
    def test_views_partition_nodes_by_kind(self, registry):
        form = Form(registry=registry)
        group = FormGroup(name="address", parent=form)
        array = FormArray(name="phones", parent=form)
        leaf = FormControl(name="zip", parent=group)
        choice = Choice("red", name="color", form=form)
        choice_control = choice.control

        assert registry.forms == [form]
        assert registry.groups == [group]
        assert registry.arrays == [array]
        assert registry.form_controls == [leaf]
        assert registry.choice_controls == [choice_control]
        assert registry.choices == [choice]
        assert set(registry.composites) == {form, group, array}
        assert set(registry.value_controls) == {leaf, choice_control}
        assert set(registry.controls) == {form, group, array, leaf, choice_control}
        assert isinstance(choice_control, ChoiceControl)


# =============================================================================
# Watch graph
# =============================================================================


class TestWatchGraph:
    def test_add_is_idempotent(self, registry):
        graph = WatchGraph()
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        assert graph.add(a, b) is True
        assert graph.add(a, b) is False
        assert graph.watchers_of(b) == [a]
        assert graph.watched_by(a) == [b]
        assert len(graph) == 1

    def test_remove_clears_both_sides(self, registry):
        graph = WatchGraph()
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        graph.add(a, b)
        assert graph.remove(a, b) is True
        assert graph.watchers_of(b) == []
        assert graph.watched_by(a) == []
        assert graph.remove(a, b) is False

    def test_remove_node_drops_edges_in_both_directions(self, registry):
        graph = WatchGraph()
        a, b, c = (FormControl(registry=registry) for _ in range(3))
        graph.add(a, b)
        graph.add(b, c)
        graph.remove_node(b)
        assert len(graph) == 0
        assert graph.watched_by(a) == []
        assert graph.watchers_of(c) == []

    def test_destroying_control_removes_its_edges(self, registry):
        a = FormControl(registry=registry)
        b = FormControl(registry=registry)
        a.watch(b)
        b.watch(a)
        a.destroy()
        assert b.watchers == []
        assert b.watching == []
        assert len(registry.watches) == 0

    def test_cycle_notification_terminates(self, registry):
        graph = WatchGraph()
        calls = []

        class Node:
            def _on_watched_value_change(self, watched):
                calls.append((self, watched))
                graph.notify(self)

        a, b = Node(), Node()
        graph.add(a, b)
        graph.add(b, a)
        graph.notify(a)
        assert calls == [(b, a), (a, b)]

    def test_watch_across_registries_rejected(self, registry):
        other_registry = NodeRegistry()
        a = FormControl(registry=registry)
        b = FormControl(registry=other_registry)
        with pytest.raises(FormTreeError):
            a.watch(b)
        other_registry.reset_all()
