"""Dependency edges between timeline items.

Edges are directed (from -> to) and typed FS or SS. An item's incoming
edge set is replaced wholesale; both endpoints must belong to the
project, and by default the resulting graph must stay acyclic.
"""

from typing import Any

import structlog

from src.config import settings
from src.errors import DependencyCycleError, DependencyValidationError
from src.events.store import EventStore
from src.events.types import DependenciesReplaced
from src.models.timeline import DependencyInput, TimelineDependency
from src.repositories.timeline_repo import TimelineRepository

logger = structlog.get_logger()

WHITE, GREY, BLACK = 0, 1, 2


def find_cycle(edges: list[tuple[str, str]]) -> list[str] | None:
    """Return one cycle as a node path, or None if the graph is acyclic.

    Iterative DFS with white/grey/black colouring; reaching a grey node
    closes a cycle.

    Examples:
        >>> find_cycle([("a", "b"), ("b", "c")]) is None
        True
        >>> find_cycle([("a", "b"), ("b", "a")])
        ['a', 'b', 'a']
    """
    graph: dict[str, list[str]] = {}
    for source, target in edges:
        graph.setdefault(source, []).append(target)
        graph.setdefault(target, [])

    colour = dict.fromkeys(graph, WHITE)
    for root in graph:
        if colour[root] != WHITE:
            continue
        path = [root]
        stack = [iter(graph[root])]
        colour[root] = GREY
        while stack:
            node = next(stack[-1], None)
            if node is None:
                colour[path.pop()] = BLACK
                stack.pop()
                continue
            if colour[node] == GREY:
                return path[path.index(node) :] + [node]
            if colour[node] == WHITE:
                colour[node] = GREY
                path.append(node)
                stack.append(iter(graph[node]))
    return None


def coerce_inputs(edges: list[DependencyInput | dict[str, Any]]) -> list[DependencyInput]:
    """Validate raw edges; entries without a predecessor are dropped."""
    inputs = [
        edge if isinstance(edge, DependencyInput) else DependencyInput.model_validate(edge)
        for edge in edges
    ]
    return [edge for edge in inputs if edge.from_item_id.strip()]


class DependencyGraph:
    """Validates and persists dependency edge sets."""

    def __init__(
        self,
        repo: TimelineRepository,
        event_store: EventStore | None = None,
        *,
        cycle_check: bool | None = None,
    ):
        """Initialize graph service.

        Args:
            repo: Timeline repository holding items and edges
            event_store: Optional audit log
            cycle_check: Reject cyclic edge sets (defaults to settings)
        """
        self._repo = repo
        self._events = event_store
        self._cycle_check = (
            settings.dependency_cycle_check if cycle_check is None else cycle_check
        )

    def _build(
        self,
        project_id: str,
        to_item_id: str,
        inputs: list[DependencyInput],
        actor_id: str | None,
    ) -> list[TimelineDependency]:
        built: list[TimelineDependency] = []
        seen: set[tuple[str, str]] = set()
        for edge in inputs:
            from_id = edge.from_item_id.strip()
            if from_id == to_item_id:
                msg = f"Item {to_item_id} cannot depend on itself"
                raise DependencyCycleError(msg)
            key = (from_id, edge.kind.value)
            if key in seen:
                continue
            seen.add(key)
            built.append(
                TimelineDependency(
                    project_id=project_id,
                    from_item_id=from_id,
                    to_item_id=to_item_id,
                    kind=edge.kind,
                    note=edge.note,
                    created_by=actor_id,
                )
            )
        return built

    async def _validate_endpoints(
        self,
        project_id: str,
        to_item_id: str,
        edges: list[TimelineDependency],
    ) -> None:
        wanted = {to_item_id} | {edge.from_item_id for edge in edges}
        found = await self._repo.existing_item_ids(project_id, sorted(wanted))
        missing = sorted(wanted - found)
        if missing:
            msg = f"Dependencies reference items outside project {project_id}: " + ", ".join(
                missing
            )
            raise DependencyValidationError(msg)

    async def _check_acyclic(
        self,
        project_id: str,
        to_item_id: str,
        edges: list[TimelineDependency],
        *,
        replace: bool,
    ) -> None:
        if not self._cycle_check or not edges:
            return
        existing = await self._repo.list_dependencies(project_id)
        pairs = [
            (edge.from_item_id, edge.to_item_id)
            for edge in existing
            if not (replace and edge.to_item_id == to_item_id)
        ]
        pairs.extend((edge.from_item_id, edge.to_item_id) for edge in edges)
        cycle = find_cycle(pairs)
        if cycle:
            msg = "Dependencies would create a cycle: " + " -> ".join(cycle)
            raise DependencyCycleError(msg)

    async def validate_predecessors(
        self,
        project_id: str,
        edges: list[DependencyInput | dict[str, Any]],
    ) -> list[DependencyInput]:
        """Check edges for an item that does not exist yet.

        Returns:
            The normalised edges

        Raises:
            DependencyValidationError: A predecessor is outside the project
        """
        inputs = coerce_inputs(edges)
        wanted = {edge.from_item_id.strip() for edge in inputs}
        found = await self._repo.existing_item_ids(project_id, sorted(wanted))
        missing = sorted(wanted - found)
        if missing:
            msg = f"Dependencies reference items outside project {project_id}: " + ", ".join(
                missing
            )
            raise DependencyValidationError(msg)
        return inputs

    async def set_dependencies(
        self,
        project_id: str,
        to_item_id: str,
        edges: list[DependencyInput | dict[str, Any]],
        actor_id: str | None = None,
    ) -> list[TimelineDependency]:
        """Replace every incoming edge of ``to_item_id``.

        Args:
            project_id: Project owning both endpoints
            to_item_id: Successor item whose predecessors are replaced
            edges: New predecessor edges (unknown kinds become FS)
            actor_id: User making the change

        Returns:
            The stored edge set

        Raises:
            DependencyValidationError: An endpoint is outside the project
            DependencyCycleError: The new set would close a cycle
        """
        built = self._build(project_id, to_item_id, coerce_inputs(edges), actor_id)
        await self._validate_endpoints(project_id, to_item_id, built)
        await self._check_acyclic(project_id, to_item_id, built, replace=True)

        await self._repo.replace_dependencies(project_id, to_item_id, built)
        logger.info(
            "dependencies replaced",
            project_id=project_id,
            item_id=to_item_id,
            edge_count=len(built),
        )
        if self._events:
            await self._events.record(
                DependenciesReplaced(
                    aggregate_id=to_item_id,
                    actor_id=actor_id,
                    project_id=project_id,
                    edge_count=len(built),
                )
            )
        return await self._repo.list_dependencies(project_id, to_item_id)

    async def add_dependencies(
        self,
        project_id: str,
        to_item_id: str,
        edges: list[DependencyInput | dict[str, Any]],
        actor_id: str | None = None,
    ) -> int:
        """Insert edges without touching the existing ones.

        Duplicate edges are ignored, so repeating a call is harmless.

        Returns:
            Number of new edges written
        """
        built = self._build(project_id, to_item_id, coerce_inputs(edges), actor_id)
        if not built:
            return 0
        await self._validate_endpoints(project_id, to_item_id, built)
        await self._check_acyclic(project_id, to_item_id, built, replace=False)

        written = 0
        for edge in built:
            if await self._repo.insert_dependency(edge):
                written += 1
        return written

    async def list_dependencies(self, project_id: str) -> list[TimelineDependency]:
        return await self._repo.list_dependencies(project_id)
