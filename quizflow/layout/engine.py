"""
Layered Layout Engine
=====================

Positions flow nodes with a rank-based (Sugiyama style) layout:

1. break cycles by reversing DFS back edges
2. rank nodes by longest path from the roots
3. order each rank with barycenter sweeps
4. assign rank and cross coordinates, then orient for the direction

Question boxes are much taller than option boxes so that the tall question
panel never overlaps the next rank. Returned positions are top-left anchored
using the nominal box size for every node kind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import networkx as nx

from ..config import settings
from ..errors import LayoutError
from ..types import FlowEdge, FlowGraph, FlowNode, NodeKind, Position
from ..utils.logger import app_logger


logger = app_logger.bind(component="layout")


class LayoutDirection(Enum):
    """Direction in which ranks flow."""
    TB = "TB"
    BT = "BT"
    LR = "LR"
    RL = "RL"

    @property
    def horizontal(self) -> bool:
        return self in (LayoutDirection.LR, LayoutDirection.RL)

    @classmethod
    def parse(cls, value) -> "LayoutDirection":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise LayoutError(
                f"Unsupported layout direction {value!r}; expected one of "
                f"{', '.join(d.value for d in cls)}"
            )


@dataclass(frozen=True)
class LayoutOptions:
    """Box sizes and spacing used by the layout engine."""
    node_width: float = 172
    node_height: float = 36
    question_extra_height: float = 1500
    rank_separation: float = 100
    node_separation: float = 200
    sweeps: int = 4

    @classmethod
    def from_settings(cls) -> "LayoutOptions":
        return cls(
            node_width=settings.node_width,
            node_height=settings.node_height,
            question_extra_height=settings.question_extra_height,
            rank_separation=settings.rank_separation,
            node_separation=settings.node_separation,
            sweeps=settings.ordering_sweeps,
        )

    def box(self, node: FlowNode) -> Tuple[float, float]:
        """(width, height) of the box reserved for ``node``."""
        height = self.node_height
        if node.type is NodeKind.QUESTION:
            height += self.question_extra_height
        return self.node_width, height


def build_layout_graph(nodes: Sequence[FlowNode], edges: Iterable[FlowEdge],
                       options: LayoutOptions) -> nx.DiGraph:
    """Directed graph with one vertex per node and one arc per usable edge.

    Edges leaving the node set and self loops carry no layout information
    and are left out.
    """
    graph = nx.DiGraph()
    for index, node in enumerate(nodes):
        width, height = options.box(node)
        graph.add_node(node.id, width=width, height=height, index=index)

    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source not in graph or edge.target not in graph:
            logger.debug(f"Edge {edge.id} leaves the laid out node set, ignored")
            continue
        graph.add_edge(edge.source, edge.target)
    return graph


def _remove_cycles(graph: nx.DiGraph) -> nx.DiGraph:
    dag = graph.copy()
    back_edges = []
    on_stack = set()
    for u, v, kind in nx.dfs_labeled_edges(graph):
        if kind == "forward":
            on_stack.add(v)
        elif kind == "reverse":
            on_stack.discard(v)
        elif kind == "nontree" and v in on_stack:
            back_edges.append((u, v))

    for u, v in back_edges:
        dag.remove_edge(u, v)
        dag.add_edge(v, u)
    if back_edges:
        logger.debug(f"Reversed {len(back_edges)} edge(s) to break cycles")
    return dag


def _assign_ranks(dag: nx.DiGraph) -> Dict[str, int]:
    rank: Dict[str, int] = {}
    for node_id in nx.topological_sort(dag):
        rank[node_id] = max((rank[p] + 1 for p in dag.predecessors(node_id)), default=0)

    # roots sit directly above their closest child
    for node_id in dag.nodes:
        if dag.in_degree(node_id) == 0 and dag.out_degree(node_id) > 0:
            rank[node_id] = min(rank[s] for s in dag.successors(node_id)) - 1

    lowest = min(rank.values(), default=0)
    return {node_id: r - lowest for node_id, r in rank.items()}


def _order_layers(dag: nx.DiGraph, rank: Dict[str, int], sweeps: int) -> List[List[str]]:
    depth = max(rank.values(), default=-1) + 1
    layers: List[List[str]] = [[] for _ in range(depth)]
    for node_id in sorted(dag.nodes, key=lambda n: dag.nodes[n]["index"]):
        layers[rank[node_id]].append(node_id)

    order = {node_id: i for layer in layers for i, node_id in enumerate(layer)}

    def reorder(layer: List[str], neighbours) -> None:
        def barycenter(node_id: str):
            adjacent = [order[m] for m in neighbours(node_id)]
            if not adjacent:
                return order[node_id], order[node_id]
            return sum(adjacent) / len(adjacent), order[node_id]

        layer.sort(key=barycenter)
        for i, node_id in enumerate(layer):
            order[node_id] = i

    for layer in layers[1:]:
        reorder(layer, dag.predecessors)
    for _ in range(sweeps):
        for layer in reversed(layers[:-1]):
            reorder(layer, dag.successors)
        for layer in layers[1:]:
            reorder(layer, dag.predecessors)
    return layers


def _pack(layer: List[str], desired: Dict[str, Optional[float]],
          cross: Dict[str, float], separation: float) -> Dict[str, float]:
    """Place a rank left to right, as close to ``desired`` as spacing allows."""
    placed: Dict[str, float] = {}
    previous = None
    for node_id in layer:
        if previous is None:
            minimum = None
        else:
            minimum = placed[previous] + (cross[previous] + cross[node_id]) / 2 + separation
        want = desired.get(node_id)
        if want is None:
            want = minimum if minimum is not None else 0.0
        placed[node_id] = want if minimum is None else max(want, minimum)
        previous = node_id
    return placed


def _cross_coordinates(dag: nx.DiGraph, layers: List[List[str]],
                       cross: Dict[str, float], separation: float) -> Dict[str, float]:
    coords: Dict[str, float] = {}

    def mean(values: List[float]) -> Optional[float]:
        return sum(values) / len(values) if values else None

    for layer in layers:
        desired = {n: mean([coords[p] for p in dag.predecessors(n) if p in coords]) for n in layer}
        coords.update(_pack(layer, desired, cross, separation))

    # centre parents over their children, bottom up
    for layer in reversed(layers[:-1]):
        desired = {}
        for node_id in layer:
            children = mean([coords[s] for s in dag.successors(node_id)])
            desired[node_id] = children if children is not None else coords[node_id]
        coords.update(_pack(layer, desired, cross, separation))
    return coords


def _rank_coordinates(layers: List[List[str]], along: Dict[str, float],
                      separation: float) -> Dict[str, float]:
    coords: Dict[str, float] = {}
    offset = 0.0
    for layer in layers:
        depth = max((along[n] for n in layer), default=0.0)
        for node_id in layer:
            coords[node_id] = offset + depth / 2
        offset += depth + separation
    return coords


def compute_centers(graph: nx.DiGraph, direction: LayoutDirection,
                    options: LayoutOptions) -> Dict[str, Tuple[float, float]]:
    """Centre point of every vertex of ``graph``, translated to a 0,0 origin."""
    if graph.number_of_nodes() == 0:
        return {}

    width = {n: graph.nodes[n]["width"] for n in graph.nodes}
    height = {n: graph.nodes[n]["height"] for n in graph.nodes}
    along, cross = (width, height) if direction.horizontal else (height, width)

    dag = _remove_cycles(graph)
    rank = _assign_ranks(dag)
    layers = _order_layers(dag, rank, options.sweeps)

    rank_axis = _rank_coordinates(layers, along, options.rank_separation)
    cross_axis = _cross_coordinates(dag, layers, cross, options.node_separation)

    centers: Dict[str, Tuple[float, float]] = {}
    for node_id in graph.nodes:
        r, c = rank_axis[node_id], cross_axis[node_id]
        if direction is LayoutDirection.TB:
            centers[node_id] = (c, r)
        elif direction is LayoutDirection.BT:
            centers[node_id] = (c, -r)
        elif direction is LayoutDirection.LR:
            centers[node_id] = (r, c)
        else:
            centers[node_id] = (-r, c)

    left = min(x - width[n] / 2 for n, (x, _) in centers.items())
    top = min(y - height[n] / 2 for n, (_, y) in centers.items())
    return {n: (x - left, y - top) for n, (x, y) in centers.items()}


def layout_graph(
    nodes: Sequence[FlowNode],
    edges: Iterable[FlowEdge],
    direction="TB",
    options: Optional[LayoutOptions] = None,
) -> List[FlowNode]:
    """Return copies of ``nodes`` with layout positions, in input order.

    Pure function of its arguments: the inputs are not modified and the
    same topology and direction always produce the same positions.
    """
    direction = LayoutDirection.parse(direction)
    if options is None:
        options = LayoutOptions.from_settings()

    graph = build_layout_graph(nodes, edges, options)
    centers = compute_centers(graph, direction, options)

    half_width = options.node_width / 2
    half_height = options.node_height / 2
    laid_out = []
    for node in nodes:
        x, y = centers[node.id]
        laid_out.append(node.with_position(Position(x=x - half_width, y=y - half_height)))

    logger.debug(
        f"Laid out {len(laid_out)} nodes, {graph.number_of_edges()} edges, direction {direction.value}"
    )
    return laid_out


def layout_flow(graph: FlowGraph, direction="TB",
                options: Optional[LayoutOptions] = None) -> FlowGraph:
    """Laid out copy of a whole flow graph; edges and results are shared."""
    return FlowGraph(
        nodes=layout_graph(graph.nodes, graph.edges, direction, options),
        edges=list(graph.edges),
        results=graph.results,
    )
