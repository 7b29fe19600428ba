"""Node registry for formtree.

A NodeRegistry is the table of live nodes for one form tree. It issues node
ids, tracks every node from construction until destruction, owns the watch
graph used by relational validators, and carries the tree-wide collaborators
(engine config, validator registry, file inspector).

Several registries may coexist; each root node creates its own unless one is
passed in, and every descendant shares its root's registry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from formtree.config import EngineConfig
from formtree.files import AttributeFileInspector
from formtree.rules.registry import ValidatorRegistry, default_registry
from formtree.types import FileInspector

if TYPE_CHECKING:
    from formtree.choice import Choice, ChoiceControl
    from formtree.control import Control, FormControl, ValueControl
    from formtree.group import CompositeControl, Form, FormArray, FormGroup
    from formtree.nodes import FormNode

logger = logging.getLogger(__name__)


class WatchGraph:
    """Adjacency structure for "watcher observes watched" edges.

    Both directions are stored so either side can be removed in one step.
    Cycles are allowed: a notification only schedules validation on the
    watcher, it never changes a value, and re-entrant notification of a node
    already being notified is dropped.
    """

    def __init__(self) -> None:
        self._watchers: dict[Control, list[Control]] = {}
        self._watching: dict[Control, list[Control]] = {}
        self._notifying: set[Control] = set()

    def add(self, watcher: Control, watched: Control) -> bool:
        """Add an edge; returns False if it already existed."""
        watchers = self._watchers.setdefault(watched, [])
        if watcher in watchers:
            return False
        watchers.append(watcher)
        self._watching.setdefault(watcher, []).append(watched)
        return True

    def remove(self, watcher: Control, watched: Control) -> bool:
        """Remove an edge; returns False if it did not exist."""
        watchers = self._watchers.get(watched, [])
        if watcher not in watchers:
            return False
        watchers.remove(watcher)
        self._watching[watcher].remove(watched)
        self._prune(watched)
        self._prune(watcher)
        return True

    def remove_node(self, node: Control) -> None:
        """Drop every edge touching node, in both directions."""
        for watched in list(self._watching.get(node, [])):
            self.remove(node, watched)
        for watcher in list(self._watchers.get(node, [])):
            self.remove(watcher, node)

    def watchers_of(self, watched: Control) -> list[Control]:
        return list(self._watchers.get(watched, []))

    def watched_by(self, watcher: Control) -> list[Control]:
        return list(self._watching.get(watcher, []))

    def notify(self, watched: Control) -> None:
        """Tell every watcher of ``watched`` that its value changed."""
        if watched in self._notifying:
            logger.debug("Skipping re-entrant watch notification from %s", watched)
            return
        self._notifying.add(watched)
        try:
            for watcher in self.watchers_of(watched):
                watcher._on_watched_value_change(watched)
        finally:
            self._notifying.discard(watched)

    def __len__(self) -> int:
        return sum(len(w) for w in self._watchers.values())

    def _prune(self, node: Control) -> None:
        if not self._watchers.get(node):
            self._watchers.pop(node, None)
        if not self._watching.get(node):
            self._watching.pop(node, None)


class NodeRegistry:
    """Table of live form nodes.

    Ids increase monotonically while the registry holds any node. When the
    last node deregisters the counter starts again from zero, so ids are only
    unique among nodes alive at the same time.

    Example:
        registry = NodeRegistry()
        form = Form(registry=registry)
        ...
        registry.reset_all()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        validators: ValidatorRegistry | None = None,
        file_inspector: FileInspector | None = None,
    ):
        self.config = config or EngineConfig()
        self._validators = validators
        self.file_inspector: FileInspector = file_inspector or AttributeFileInspector()
        self.watches = WatchGraph()
        self._nodes: dict[int, FormNode] = {}
        self._counter = 0

    @property
    def validators(self) -> ValidatorRegistry:
        """Validator registry used to resolve rules; the shared one by default."""
        return self._validators if self._validators is not None else default_registry()

    # -------------------------------------------------------------------------
    # Identity and membership
    # -------------------------------------------------------------------------

    def create_id(self) -> int:
        """Issue the next node id."""
        self._counter += 1
        return self._counter

    def register(self, node: FormNode) -> int:
        """Add a node to the live set, assigning its id on first registration.

        Re-registering a live node is a no-op that returns its existing id.
        """
        if node.id is not None and self._nodes.get(node.id) is node:
            return node.id
        if node.id is None:
            node.id = self.create_id()
        self._nodes[node.id] = node
        logger.debug("Registered node %s (%s)", node.id, node.kind.value)
        return node.id

    def deregister(self, node: FormNode) -> None:
        """Remove a node from the live set; unknown nodes are ignored."""
        if node.id is None or self._nodes.get(node.id) is not node:
            return
        del self._nodes[node.id]
        logger.debug("Deregistered node %s (%s)", node.id, node.kind.value)
        if not self._nodes:
            self._counter = 0

    def reset_all(self) -> None:
        """Destroy every live node and restart the id counter."""
        for node in list(self._nodes.values()):
            node.destroy()
        self._nodes.clear()
        self._counter = 0

    def get(self, node_id: int) -> FormNode | None:
        return self._nodes.get(node_id)

    def __contains__(self, node: object) -> bool:
        node_id = getattr(node, "id", None)
        return node_id is not None and self._nodes.get(node_id) is node

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[FormNode]:
        return iter(list(self._nodes.values()))

    # -------------------------------------------------------------------------
    # Typed views
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[FormNode]:
        """Live nodes in registration order."""
        return list(self._nodes.values())

    @property
    def controls(self) -> list[Control]:
        return [n for n in self._nodes.values() if n.is_control]  # type: ignore[misc]

    @property
    def composites(self) -> list[CompositeControl]:
        return [n for n in self._nodes.values() if n.is_composite]  # type: ignore[misc]

    @property
    def value_controls(self) -> list[ValueControl]:
        return [n for n in self._nodes.values() if n.is_value_control]  # type: ignore[misc]

    @property
    def choices(self) -> list[Choice]:
        return [n for n in self._nodes.values() if n.is_choice]  # type: ignore[misc]

    @property
    def forms(self) -> list[Form]:
        return self._of_kind("FORM")

    @property
    def groups(self) -> list[FormGroup]:
        return self._of_kind("FORM_GROUP")

    @property
    def arrays(self) -> list[FormArray]:
        return self._of_kind("FORM_ARRAY")

    @property
    def form_controls(self) -> list[FormControl]:
        return self._of_kind("FORM_CONTROL")

    @property
    def choice_controls(self) -> list[ChoiceControl]:
        return self._of_kind("CHOICE_CONTROL")

    def _of_kind(self, kind_name: str) -> list:
        return [n for n in self._nodes.values() if n.kind.name == kind_name]
