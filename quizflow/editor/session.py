from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from .handles import HandleKind
from .ids import NodeIdGenerator
from .store import GraphStore
from ..config import settings
from ..errors import GraphIntegrityError
from ..fetch.client import fetch_documents
from ..layout.engine import LayoutOptions, layout_flow, layout_graph
from ..schema.exporter import ExportedDocuments, export_documents
from ..schema.importer import parse_documents
from ..types import FlowEdge, FlowGraph, FlowNode, NodeKind, Position, edge_id_for
from ..utils.logger import app_logger


@dataclass(frozen=True)
class Viewport:
    """Canvas pan/zoom plus the on-screen origin of the canvas element."""
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    origin_left: float = 0.0
    origin_top: float = 0.0

    def project(self, client_x: float, client_y: float) -> Position:
        """Map screen pixels to canvas coordinates."""
        local_x = client_x - self.origin_left
        local_y = client_y - self.origin_top
        return Position(x=(local_x - self.x) / self.zoom, y=(local_y - self.y) / self.zoom)


@dataclass(frozen=True)
class ConnectionEndEvent:
    """Where a connection drag was released."""
    client_x: float
    client_y: float
    over_pane: bool = True


@dataclass(frozen=True)
class PendingConnection:
    node_id: str
    handle_id: Optional[str]


class EditorSession:
    """One author's editing session over a single flow graph.

    Owns the graph store, the node id generator, the canvas viewport and the
    in-progress connection gesture. Import, layout and export return new
    values; only this class installs them into the store.
    """

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        id_generator: Optional[NodeIdGenerator] = None,
        viewport: Optional[Viewport] = None,
        layout_options: Optional[LayoutOptions] = None,
        auto_layout: Optional[bool] = None,
    ):
        self.store = store or GraphStore()
        self.id_generator = id_generator or NodeIdGenerator()
        self.viewport = viewport or Viewport()
        self.layout_options = layout_options or LayoutOptions.from_settings()
        self.auto_layout = settings.auto_layout_on_connect if auto_layout is None else auto_layout
        self.generation = 0
        self.pending: Optional[PendingConnection] = None
        self._saved_viewport: Optional[Viewport] = None
        self.logger = app_logger.bind(component="session")

        self.id_generator.reserve(node.id for node in self.store.nodes)

    # Import / layout / export

    def import_documents(self, questions: Any, strings: Any, results: Any = None,
                         direction: str = "TB") -> FlowGraph:
        """Parse, lay out and install documents that are already in memory."""
        self.generation += 1
        graph = parse_documents(questions, strings, results, id_generator=self.id_generator)
        laid_out = layout_flow(graph, direction, self.layout_options)
        self.store.set_graph(laid_out)
        return self.store.snapshot()

    async def import_from(self, base_url: str, direction: str = "TB") -> Optional[FlowGraph]:
        """Fetch, parse and install the documents found at ``base_url``.

        Returns None when a newer import started while this one was in flight;
        the stale result is dropped. Any failure leaves the current graph as is.
        """
        self.generation += 1
        generation = self.generation

        documents = await fetch_documents(base_url)
        graph = parse_documents(
            documents.questions, documents.strings, documents.results,
            id_generator=self.id_generator,
        )
        laid_out = layout_flow(graph, direction, self.layout_options)

        if generation != self.generation:
            self.logger.info(f"Discarding stale import {generation} from {base_url} (current {self.generation})")
            return None
        self.store.set_graph(laid_out)
        return self.store.snapshot()

    def relayout(self, direction: str = "TB") -> FlowGraph:
        """Re-run the layout on the current graph and install the positions."""
        self.store.set_nodes(layout_graph(self.store.nodes, self.store.edges, direction, self.layout_options))
        return self.store.snapshot()

    def export(self) -> ExportedDocuments:
        return export_documents(self.store.snapshot())

    # Mutation protocol

    def connect_start(self, node_id: str, handle_id: Optional[str]):
        self.pending = PendingConnection(node_id=node_id, handle_id=handle_id)

    def connect_end(self, event: ConnectionEndEvent) -> Optional[Tuple[FlowNode, FlowEdge]]:
        """Finish a connection gesture.

        Dropping on empty canvas from a known handle spawns the handle's node
        kind at the pointer and links it to the originating node. Everything
        else leaves the graph unchanged and returns None.
        """
        pending, self.pending = self.pending, None
        if pending is None or not event.over_pane:
            return None

        kind = HandleKind.resolve(pending.handle_id)
        if kind is None:
            self.logger.debug(f"Ignoring drop from unhandled handle {pending.handle_id!r}")
            return None
        if self.store.get_node(pending.node_id) is None:
            raise GraphIntegrityError(f"Connection started from unknown node: {pending.node_id}")

        new_id = self.id_generator.next_id()
        node = FlowNode(
            id=new_id,
            type=kind.target_kind,
            data=kind.default_data(new_id),
            position=self.viewport.project(event.client_x, event.client_y),
        )
        edge = FlowEdge(
            id=edge_id_for(pending.node_id, new_id),
            source=pending.node_id,
            target=new_id,
            source_handle=kind.handle_id,
        )
        edge = self.store.add_node_with_edge(node, edge)
        self.logger.info(f"Added {node.type.value} {new_id} from {pending.node_id} via {kind.handle_id}")

        if self.auto_layout:
            self.relayout()
            node = self.store.get_node(new_id)
        return node, edge

    def add_question(self) -> FlowNode:
        """Add a free-standing question next to the previously added ones."""
        new_id = self.id_generator.next_id()
        node = FlowNode(
            id=new_id,
            type=NodeKind.QUESTION,
            data=HandleKind.GREY.default_data(new_id),
            position=Position(x=self.id_generator.counter * settings.question_spacing, y=settings.question_row),
        )
        self.store.add_node(node)
        self.logger.info(f"Added question {new_id}")
        return node

    def update_node_data(self, node_id: str, fields: Dict[str, Any]) -> FlowNode:
        return self.store.update_node_data(node_id, fields)

    # Canvas

    def toggle_focus(self, node_id: str, window_width: float, window_height: float) -> Viewport:
        """Zoom in on a node, or back out to the view saved before zooming in."""
        if self._saved_viewport is not None:
            self.viewport, self._saved_viewport = self._saved_viewport, None
            return self.viewport

        node = self.store.get_node(node_id)
        if node is None:
            raise GraphIntegrityError(f"Unknown node: {node_id}")
        self._saved_viewport = self.viewport
        self.viewport = replace(
            self.viewport,
            x=-node.position.x + window_width / 2,
            y=-node.position.y + window_height / 2,
            zoom=settings.focus_zoom,
        )
        return self.viewport
