"""Graph algorithms over the "depends on" relation.

The pre-insert check walks a plain adjacency mapping
``task_id -> ids it depends on`` with an explicit stack, so graph depth is
bounded by memory rather than the interpreter's recursion limit. Whole-graph
views (levels, cycles, downstream reach, critical path) run on a
``networkx.DiGraph`` whose edges point from a blocking task to the task
waiting on it. Nothing here touches the store.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping

import networkx as nx

from taskweave.models import TaskDependency

Adjacency = Mapping[str, Iterable[str]]


def build_adjacency(dependencies: Iterable[TaskDependency]) -> dict[str, list[str]]:
    """Map each dependent task to the tasks it waits on (blocking edges only)."""
    depends_on: dict[str, list[str]] = defaultdict(list)
    for dep in dependencies:
        if dep.is_blocking:
            depends_on[dep.dependent_task_id].append(dep.blocking_task_id)
    return dict(depends_on)


def blocking_digraph(depends_on: Adjacency, nodes: Iterable[str] = ()) -> nx.DiGraph:
    """Directed graph with an edge from each blocking task to each task waiting on it."""
    graph = nx.DiGraph()
    graph.add_nodes_from(nodes)
    for dependent, blockers in depends_on.items():
        for blocker in blockers:
            graph.add_edge(blocker, dependent)
    return graph


def find_cycle_path(
    depends_on: Adjacency,
    dependent_id: str,
    blocking_id: str,
) -> list[str] | None:
    """Return the cycle that adding ``dependent_id -> blocking_id`` would close.

    Searches depth-first from ``blocking_id`` along existing edges. Reaching
    ``dependent_id`` yields ``[dependent, blocking, ..., dependent]``. Meeting
    a node already on the current path means the stored graph holds a cycle
    of its own; that cycle is returned instead. None when the edge is safe.
    """
    if dependent_id == blocking_id:
        return [dependent_id, dependent_id]

    path = [blocking_id]
    on_path = {blocking_id}
    visited = {blocking_id}
    stack = [iter(depends_on.get(blocking_id, ()))]

    while stack:
        next_id = next(stack[-1], None)
        if next_id is None:
            stack.pop()
            on_path.discard(path.pop())
            continue
        if next_id == dependent_id:
            return [dependent_id, *path, dependent_id]
        if next_id in on_path:
            return [*path[path.index(next_id) :], next_id]
        if next_id in visited:
            continue
        visited.add(next_id)
        path.append(next_id)
        on_path.add(next_id)
        stack.append(iter(depends_on.get(next_id, ())))

    return None


def find_cycles(graph: nx.DiGraph) -> list[list[str]]:
    """Every simple cycle in the graph, closed and listed in "depends on" order."""
    cycles = []
    for cycle in nx.simple_cycles(graph):
        ordered = cycle[::-1]
        cycles.append([*ordered, ordered[0]])
    return cycles


def dependency_levels(graph: nx.DiGraph) -> dict[str, int]:
    """Length of the longest chain of blocking predecessors for each node.

    Nodes with nothing to wait on sit at level 0. Members of a cycle (which
    should never exist) share the level of their strongly connected component.
    """
    if nx.is_directed_acyclic_graph(graph):
        return {
            node: level
            for level, generation in enumerate(nx.topological_generations(graph))
            for node in generation
        }

    condensed = nx.condensation(graph)
    component_of = condensed.graph["mapping"]
    component_levels = dependency_levels(condensed)
    return {node: component_levels[component_of[node]] for node in graph}


def downstream_levels(graph: nx.DiGraph, start_id: str) -> dict[str, int]:
    """Breadth-first distance from ``start_id`` to every task it transitively holds up."""
    if start_id not in graph:
        return {}
    levels = nx.single_source_shortest_path_length(graph, start_id)
    del levels[start_id]
    return levels


def longest_chain(graph: nx.DiGraph, start_id: str) -> list[str]:
    """Longest path of waiting tasks beginning at ``start_id``."""
    if start_id not in graph:
        return [start_id]
    reach = graph.subgraph(nx.descendants(graph, start_id) | {start_id})
    if nx.is_directed_acyclic_graph(reach):
        # Every node is reachable from start_id, so the longest path begins there
        return nx.dag_longest_path(reach)

    # A stored cycle has no longest path; use the farthest shortest one
    distances = nx.single_source_shortest_path_length(reach, start_id)
    farthest = max(distances, key=lambda node: (distances[node], node))
    return nx.shortest_path(reach, start_id, farthest)
