from typing import List, Dict, Any, Optional, Iterable
import copy
import datetime
import json
from pathlib import Path

from ..config import settings
from ..errors import GraphFileError, GraphIntegrityError
from ..types import FlowEdge, FlowGraph, FlowNode, edge_id_for
from ..utils.logger import app_logger


def check_integrity(nodes: Iterable[FlowNode], edges: Iterable[FlowEdge]) -> None:
    """Raise GraphIntegrityError on duplicate ids or dangling edge endpoints."""
    node_ids = set()
    for node in nodes:
        if node.id in node_ids:
            raise GraphIntegrityError(f"Duplicate node id: {node.id}")
        node_ids.add(node.id)

    edge_ids = set()
    for edge in edges:
        if edge.id in edge_ids:
            raise GraphIntegrityError(f"Duplicate edge id: {edge.id}")
        edge_ids.add(edge.id)
        if edge.source not in node_ids:
            raise GraphIntegrityError(f"Edge {edge.id} has unknown source node: {edge.source}")
        if edge.target not in node_ids:
            raise GraphIntegrityError(f"Edge {edge.id} has unknown target node: {edge.target}")


class GraphStore:
    """Authoritative holder of the graph being edited.

    Readers get snapshots; writers go through the command methods, each of
    which validates the complete result before anything is replaced. When a
    storage path is given every committed change is also saved as JSON.
    """

    def __init__(self, storage_path: Optional[str] = None,
                 edge_styles: Optional[Dict[str, Dict[str, Any]]] = None):
        self.logger = app_logger.bind(component="graph_store")
        self.edge_styles = dict(settings.edge_styles if edge_styles is None else edge_styles)
        self._nodes: List[FlowNode] = []
        self._edges: List[FlowEdge] = []
        self._results: Optional[Dict[str, Any]] = None
        self.metadata = {
            "version": "1.0",
            "created_at": None,
            "updated_at": None
        }

        self.storage_path = Path(storage_path) if storage_path else None
        if self.storage_path is not None:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_data()

    def _load_data(self):
        """Load a previously saved graph, if any."""
        if not self.storage_path.exists():
            return
        with open(self.storage_path, 'r', encoding='utf-8') as f:
            try:
                payload = json.load(f)
            except json.JSONDecodeError as e:
                raise GraphFileError(f"{self.storage_path} is not valid JSON: {e}") from e
        graph = FlowGraph.from_dict(payload)
        check_integrity(graph.nodes, graph.edges)
        self._nodes, self._edges, self._results = graph.nodes, graph.edges, graph.results
        self.metadata.update(payload.get("metadata", {}))
        self.logger.info(f"Loaded graph data from {self.storage_path}")

    def _save_data(self):
        """Save the current graph to the storage path."""
        self.metadata["updated_at"] = datetime.datetime.now().isoformat()
        if not self.metadata["created_at"]:
            self.metadata["created_at"] = self.metadata["updated_at"]
        if self.storage_path is None:
            return

        payload = self.snapshot().to_dict()
        payload["results"] = self._results
        payload["metadata"] = self.metadata
        with open(self.storage_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        self.logger.debug(f"Saved graph data to {self.storage_path}")

    def _commit(self, nodes: List[FlowNode], edges: List[FlowEdge]):
        check_integrity(nodes, edges)
        self._nodes = nodes
        self._edges = edges
        self._save_data()

    def _styled(self, edge: FlowEdge) -> FlowEdge:
        if edge.style or edge.source_handle is None:
            return edge
        return FlowEdge(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            source_handle=edge.source_handle,
            style=self.get_edge_style(edge.source_handle),
        )

    # Read side

    @property
    def nodes(self) -> List[FlowNode]:
        return copy.deepcopy(self._nodes)

    @property
    def edges(self) -> List[FlowEdge]:
        return copy.deepcopy(self._edges)

    @property
    def results(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._results)

    def snapshot(self) -> FlowGraph:
        """Copy of the whole graph."""
        return FlowGraph(nodes=self.nodes, edges=self.edges, results=self.results)

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self._nodes:
            if node.id == node_id:
                return copy.deepcopy(node)
        return None

    def get_edge_style(self, handle_id: Optional[str]) -> Dict[str, Any]:
        """Presentational style for edges drawn from ``handle_id``."""
        style = self.edge_styles.get(handle_id)
        if style is None:
            return {"stroke": settings.default_edge_stroke}
        return dict(style)

    def get_stats(self) -> Dict[str, Any]:
        """Count nodes by kind and edges by source handle."""
        node_counts = {}
        for node in self._nodes:
            node_counts[node.type.value] = node_counts.get(node.type.value, 0) + 1

        handle_counts = {}
        for edge in self._edges:
            handle = edge.source_handle or "none"
            handle_counts[handle] = handle_counts.get(handle, 0) + 1

        return {"nodes": node_counts, "edges": handle_counts}

    # Write side

    def set_nodes(self, nodes: List[FlowNode]):
        """Replace every node; current edges must still resolve."""
        self._commit(copy.deepcopy(list(nodes)), self._edges)

    def set_edges(self, edges: List[FlowEdge]):
        """Replace every edge."""
        self._commit(self._nodes, [self._styled(e) for e in copy.deepcopy(list(edges))])

    def set_graph(self, graph: FlowGraph):
        """Replace nodes, edges and results in one step."""
        nodes = copy.deepcopy(list(graph.nodes))
        edges = [self._styled(e) for e in copy.deepcopy(list(graph.edges))]
        check_integrity(nodes, edges)
        self._results = copy.deepcopy(graph.results)
        self._commit(nodes, edges)
        self.logger.info(f"Installed graph with {len(nodes)} nodes and {len(edges)} edges")

    def add_node(self, node: FlowNode):
        self._commit(self._nodes + [copy.deepcopy(node)], self._edges)

    def on_connect(self, source: str, target: str, source_handle: Optional[str] = None,
                   edge_id: Optional[str] = None) -> FlowEdge:
        """Connect two existing nodes; reconnecting the same pair is a no-op."""
        edge_id = edge_id or edge_id_for(source, target)
        for existing in self._edges:
            if existing.id == edge_id and existing.source == source and existing.target == target:
                self.logger.debug(f"Edge {edge_id} already exists")
                return copy.deepcopy(existing)

        edge = self._styled(FlowEdge(id=edge_id, source=source, target=target, source_handle=source_handle))
        self._commit(self._nodes, self._edges + [edge])
        return copy.deepcopy(edge)

    def add_node_with_edge(self, node: FlowNode, edge: FlowEdge) -> FlowEdge:
        """Insert a node and the edge reaching it together, or neither."""
        edge = self._styled(copy.deepcopy(edge))
        self._commit(self._nodes + [copy.deepcopy(node)], self._edges + [edge])
        return copy.deepcopy(edge)

    def update_node_data(self, node_id: str, fields: Dict[str, Any]) -> FlowNode:
        """Merge ``fields`` into a node's data."""
        nodes = copy.deepcopy(self._nodes)
        for node in nodes:
            if node.id == node_id:
                node.data.update(fields)
                self._commit(nodes, self._edges)
                return copy.deepcopy(node)
        raise GraphIntegrityError(f"Unknown node: {node_id}")

    def clear(self):
        """Drop the whole graph."""
        self._results = None
        self._commit([], [])
        self.logger.info("Cleared graph store")
