"""Residue-level hydrogen-bond graph and bridge path search."""
from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Set, Tuple

ResidueGraph = Dict[int, Set[int]]
BridgePath = Tuple[int, ...]


def build_residue_graph(
    atom_pairs: Iterable[Tuple[int, int]],
    residue_of: Callable[[int], int],
) -> ResidueGraph:
    """Collapse donor/acceptor atom pairs into undirected residue adjacency.

    Several atom pairs between the same two residues give a single edge.
    Pairs inside one residue are accepted but add nothing.
    """
    graph: Dict[int, Set[int]] = defaultdict(set)
    for donor, acceptor in atom_pairs:
        i = residue_of(int(donor))
        j = residue_of(int(acceptor))
        if i == j:
            continue
        graph[i].add(j)
        graph[j].add(i)
    return dict(graph)


def find_bridge_paths(
    graph: ResidueGraph,
    sources: Iterable[int],
    targets: Iterable[int],
    max_steps: int,
) -> List[BridgePath]:
    """Every simple path from a source residue to a target residue.

    A path has between 2 and ``max_steps`` residues. Reaching a target ends
    that branch; other branches may still reach the same target through
    different intermediates, and each such route is reported. A source that
    is itself a target only counts when reached again after at least one hop.

    The search is exhaustive up to the depth bound, so dense water networks
    can produce a number of paths exponential in ``max_steps``.
    """
    target_set = set(targets)
    paths: List[BridgePath] = []
    if not target_set:
        return paths
    for source in sorted(set(sources)):
        paths.extend(_walk(graph, source, target_set, max_steps))
    return paths


def _walk(
    graph: ResidueGraph,
    source: int,
    targets: Set[int],
    max_steps: int,
) -> List[BridgePath]:
    found: List[BridgePath] = []
    stack: List[BridgePath] = [(source,)]
    while stack:
        history = stack.pop()
        current = history[-1]
        if len(history) > 1 and current in targets:
            found.append(history)
            continue
        if len(history) >= max_steps:
            continue
        # Reverse order on the stack so neighbours are expanded ascending.
        for neighbor in sorted(graph.get(current, ()), reverse=True):
            if neighbor not in history:
                stack.append(history + (neighbor,))
    return found


def edge_count(graph: ResidueGraph) -> int:
    return sum(len(neighbors) for neighbors in graph.values()) // 2
