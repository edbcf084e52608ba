"""Property dependency graph and change propagation.

Every live property of an encounter is a node; an edge runs from a source
property to each property computed from it. When a property changes, its
transitive dependents are recomputed exactly once each, in topological
order, so a dependent never reads a stale source.
"""

from __future__ import annotations

from typing import Iterable

import networkx as nx

from faith_encounter.core.exceptions import CyclicDependencyError
from faith_encounter.core.logging import get_logger
from faith_encounter.models.enums import PropertyCategory
from faith_encounter.models.property import Property


logger = get_logger(__name__)


class PropertyGraph:
    """Directed acyclic graph of property sources.

    Example:
        >>> graph = PropertyGraph()
        >>> graph.link(influence, charisma)   # influence is computed from charisma
        >>> charisma.apply_add(2)
        >>> graph.propagate(charisma)
        [charisma, influence]
    """

    def __init__(self) -> None:
        self._graph: nx.DiGraph = nx.DiGraph()

    def __contains__(self, prop: object) -> bool:
        return prop in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def add(self, *props: Property) -> None:
        """Register properties without sources."""
        for prop in props:
            self._graph.add_node(prop)

    def remove(self, prop: Property) -> None:
        """Drop a property and every edge touching it, on both ends."""
        if prop not in self._graph:
            return
        for dependent in list(self._graph.successors(prop)):
            for category in PropertyCategory:
                sources = dependent.sources_for(category)
                sources[:] = [link for link in sources if link.prop is not prop]
        for source in list(self._graph.predecessors(prop)):
            for category in PropertyCategory:
                dependents = source.dependents_for(category)
                dependents[:] = [p for p in dependents if p is not prop]
        self._graph.remove_node(prop)

    def link(
        self,
        dependent: Property,
        source: Property,
        category: PropertyCategory = PropertyCategory.VAL,
        read: PropertyCategory = PropertyCategory.VAL,
    ) -> None:
        """Make one of a property's values depend on another property.

        Args:
            dependent: Property computed from the source.
            source: Property feeding in.
            category: Which value of the dependent the source feeds.
            read: Which value of the source is read.

        Raises:
            CyclicDependencyError: If the link is a self-reference or would
                close a cycle.
        """
        if dependent is source:
            raise CyclicDependencyError(
                f"Property {dependent.label} cannot be its own source",
                cycle=[dependent.label, dependent.label],
            )
        self._graph.add_node(dependent)
        self._graph.add_node(source)
        if nx.has_path(self._graph, dependent, source):
            path = nx.shortest_path(self._graph, dependent, source)
            raise CyclicDependencyError(
                f"Linking {source.label} into {dependent.label} would close a cycle",
                cycle=[p.label for p in (*path, dependent)],
            )
        if self._graph.has_edge(source, dependent):
            self._graph[source][dependent]["links"].append((category, read))
        else:
            self._graph.add_edge(source, dependent, links=[(category, read)])
        dependent.link_source(source, category, read)

    def dependents(self, prop: Property) -> set[Property]:
        """Every property transitively computed from the given one."""
        if prop not in self._graph:
            return set()
        return set(nx.descendants(self._graph, prop))

    def _ordered(self, nodes: Iterable[Property]) -> list[Property]:
        subgraph = self._graph.subgraph(nodes)
        try:
            return list(nx.topological_sort(subgraph))
        except nx.NetworkXUnfeasible as exc:
            cycle = nx.find_cycle(subgraph)
            raise CyclicDependencyError(
                "Property sources form a cycle",
                cycle=[edge[0].label for edge in cycle] + [cycle[0][0].label],
            ) from exc

    def propagate(self, prop: Property) -> list[Property]:
        """Recompute a changed property and everything that depends on it.

        The changed property keeps the previous values recorded by the
        mutation that changed it.

        Args:
            prop: The property whose value changed.

        Returns:
            The recomputed properties in recomputation order, the changed
            property first.
        """
        self._graph.add_node(prop)
        order = self._ordered({prop} | self.dependents(prop))
        for node in order:
            node.recompute(snapshot=node is not prop)
        logger.debug("Property change propagated", property=prop.label, recomputed=len(order))
        return order

    def recompute_all(self) -> list[Property]:
        """Recompute every registered property in dependency order."""
        order = self._ordered(self._graph.nodes)
        for node in order:
            node.recompute()
        return order


__all__ = ["PropertyGraph"]
