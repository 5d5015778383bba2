"""Layered-layout primitives shared by the rank-based engines.

  1. Cycle removal   (greedy-FAS ordering, back-edges reversed)
  2. Rank propagation (longest path over the resulting DAG)
  3. Barycenter weight (mean neighbour position in an adjacent layer)
  4. Crossing count   (inversions between consecutive layers)

The hierarchical engine and the subgraph-aware engine both rank nodes with
these helpers, so ranks always grow along directed links once cycles are
broken.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import networkx as nx

# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Compute a node ordering using the greedy-FAS heuristic.

    Nodes earlier in the ordering should have outgoing links going forward.

    Algorithm (Eades, Lin, Smyth 1993):
    - Maintain in/out degree counters updated as nodes are removed.
    - Repeatedly:
        1. Move all sinks (out_deg == 0) to the tail list.
        2. Move all sources (in_deg == 0) to the head list.
        3. Of the remaining nodes (all on cycles), move the one with the
           largest (out - in) surplus to the head list.
    - Final ordering: head + reversed(tail).

    Candidates are scanned in the graph's insertion order so the result is
    deterministic for a given input.
    """
    active: dict[str, None] = dict.fromkeys(graph.nodes)

    out_deg: dict[str, int] = {n: graph.out_degree(n) for n in graph.nodes}
    in_deg: dict[str, int] = {n: graph.in_degree(n) for n in graph.nodes}

    head: list[str] = []
    tail: list[str] = []

    def drop(node: str) -> None:
        del active[node]
        for succ in graph.successors(node):
            if succ in active:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active:
                out_deg[pred] -= 1

    while active:
        changed = True
        while changed:
            changed = False
            sinks = [n for n in active if out_deg[n] == 0]
            for sink in sinks:
                drop(sink)
                tail.append(sink)
                changed = True

        changed = True
        while changed:
            changed = False
            sources = [n for n in active if in_deg[n] == 0]
            for source in sources:
                drop(source)
                head.append(source)
                changed = True

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            drop(best)
            head.append(best)

    tail.reverse()
    return head + tail


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Return a cycle-free copy of ``graph`` and the set of reversed links.

    Back-edges (source after target in the greedy-FAS ordering) are reversed;
    self-loops are dropped and reported as reversed.
    """
    if graph.number_of_nodes() == 0:
        return graph.copy(), set()

    position = {node: pos for pos, node in enumerate(greedy_fas_ordering(graph))}

    reversed_edges: set[tuple[str, str]] = set()
    dag: nx.DiGraph = nx.DiGraph()
    dag.add_nodes_from(graph.nodes)

    for src, tgt in graph.edges():
        if src == tgt:
            reversed_edges.add((src, tgt))
            continue
        if position[src] > position[tgt]:
            reversed_edges.add((src, tgt))
            dag.add_edge(tgt, src)
        else:
            dag.add_edge(src, tgt)

    return dag, reversed_edges


# ─── Rank Propagation ─────────────────────────────────────────────────────────


def propagate_ranks(dag: nx.DiGraph, ranks: dict[str, int]) -> dict[str, int]:
    """Raise ranks along DAG edges until rank[v] >= rank[u] + 1 for every u → v.

    ``ranks`` supplies the starting value of each node (missing nodes start
    at 0) and is not modified. Runs the fixed-point iteration in topological
    order, so one pass is enough.
    """
    result: dict[str, int] = {node: ranks.get(node, 0) for node in dag.nodes}
    for node in nx.topological_sort(dag):
        for succ in dag.successors(node):
            if result[succ] < result[node] + 1:
                result[succ] = result[node] + 1
    return result


def longest_path_ranks(graph: nx.DiGraph) -> dict[str, int]:
    """Rank every node by its longest path from a root (no incoming link).

    Cycles are broken with ``remove_cycles`` first, so every node gets a
    finite rank and ranks never decrease along a kept link.
    """
    dag, _ = remove_cycles(graph)
    return propagate_ranks(dag, {})


# ─── Crossing Minimization Helpers ────────────────────────────────────────────


def barycenter(node_id: str, graph: nx.Graph, neighbor_pos: Mapping[str, float]) -> float:
    """Average position of a node's neighbours in the reference layer.

    Returns float('inf') if the node has no neighbour there, so such nodes
    sort after every positioned one.
    """
    if node_id not in graph:
        return float("inf")

    positions = [neighbor_pos[nb] for nb in graph.neighbors(node_id) if nb in neighbor_pos]
    if not positions:
        return float("inf")
    return sum(positions) / len(positions)


def count_crossings(ordering: Iterable[list[str]], graph: nx.Graph) -> int:
    """Count edge crossings between consecutive layers (inversion count heuristic)."""
    layers = list(ordering)
    total = 0
    for l_idx in range(len(layers) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(layers[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(layers[l_idx]):
            if src_id in graph:
                for nb in graph.neighbors(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total
