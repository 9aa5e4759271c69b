"""
Lineage Topology
================

Structural checks over a user's snapshot chain.

Each snapshot is a node; each previous_snapshot_id link is an edge
from the older snapshot to the newer one. A healthy chain is a single
path: one root, no forks, no dangling links.

A fork means two snapshots claimed the same predecessor, which is what
an unserialized find-latest + append race produces.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Tuple
import networkx as nx

from ..contracts.entities import Snapshot


@dataclass(frozen=True)
class LineageReport:
    """Immutable structural summary of one user's snapshot chain."""
    user_id: str
    snapshot_count: int
    root_ids: Tuple[str, ...]
    # (parent_id, (child_id, ...)) for every parent with more than one child
    forks: Tuple[Tuple[str, Tuple[str, ...]], ...]
    # previous_snapshot_id values that point at no stored snapshot
    dangling_ids: Tuple[str, ...]
    is_linear: bool


def build_lineage_graph(snapshots: Iterable[Snapshot]) -> nx.DiGraph:
    snapshots = tuple(snapshots)
    graph = nx.DiGraph()
    for snapshot in snapshots:
        graph.add_node(snapshot.snapshot_id, stored=True,
                       timestamp=snapshot.timestamp)
    for snapshot in snapshots:
        previous = snapshot.previous_snapshot_id
        if previous is None:
            continue
        if previous not in graph:
            graph.add_node(previous, stored=False)
        graph.add_edge(previous, snapshot.snapshot_id)
    return graph


def analyze_lineage(user_id: str, snapshots: Iterable[Snapshot]) -> LineageReport:
    snapshots = tuple(snapshots)
    graph = build_lineage_graph(snapshots)

    stored = [n for n, data in graph.nodes(data=True) if data.get("stored")]
    dangling = tuple(sorted(n for n, data in graph.nodes(data=True)
                            if not data.get("stored")))
    roots = tuple(s.snapshot_id for s in snapshots if s.previous_snapshot_id is None)

    forks = []
    for node in sorted(graph.nodes):
        children = list(graph.successors(node))
        if len(children) > 1:
            ordered = sorted(children, key=lambda c: graph.nodes[c]["timestamp"])
            forks.append((node, tuple(ordered)))

    is_linear = (
        not stored
        or (len(roots) == 1
            and not forks
            and not dangling
            and nx.is_directed_acyclic_graph(graph)
            and nx.is_weakly_connected(graph))
    )

    return LineageReport(
        user_id=user_id,
        snapshot_count=len(stored),
        root_ids=roots,
        forks=tuple(forks),
        dangling_ids=dangling,
        is_linear=is_linear,
    )
