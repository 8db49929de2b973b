from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field, replace
from enum import Enum

from .errors import GraphFileError


class NodeKind(Enum):
    """Node kind enumeration."""
    QUESTION = "question"
    OPTION = "option"

    @classmethod
    def parse(cls, value: Any) -> Optional["NodeKind"]:
        """Return the kind for a raw value, or None when it is not a known kind."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


QUESTION_FIELDS = (
    "label",
    "subtitle",
    "buttonLabel",
    "backgroundImage",
    "footerFragment",
    "maxSelections",
    "minSelections",
)

OPTION_FIELDS = ("label", "text", "icon", "image", "next")


@dataclass(frozen=True)
class Position:
    """Top-left anchored point in layout space."""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Position":
        if not data:
            return cls()
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass
class FlowNode:
    """Represents a question or option vertex of the flow graph."""
    id: str
    type: NodeKind
    data: Dict[str, Any] = field(default_factory=dict)
    position: Position = field(default_factory=Position)

    @property
    def is_question(self) -> bool:
        return self.type is NodeKind.QUESTION

    @property
    def is_option(self) -> bool:
        return self.type is NodeKind.OPTION

    def with_position(self, position: Position) -> "FlowNode":
        """Return a copy placed at ``position``, every other field kept."""
        return replace(self, data=dict(self.data), position=position)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "data": dict(self.data),
            "position": self.position.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowNode":
        kind = NodeKind.parse(data.get("type"))
        if kind is None:
            raise ValueError(f"Unknown node type: {data.get('type')!r}")
        return cls(
            id=str(data["id"]),
            type=kind,
            data=dict(data.get("data") or {}),
            position=Position.from_dict(data.get("position")),
        )


def edge_id_for(source: str, target: str) -> str:
    """Deterministic edge id for a ``source -> target`` arc."""
    return f"e{source}-{target}"


@dataclass
class FlowEdge:
    """Represents a directed arc from a question to one of its options."""
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    style: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "sourceHandle": self.source_handle,
            "style": dict(self.style),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowEdge":
        source = str(data["source"])
        target = str(data["target"])
        return cls(
            id=str(data.get("id") or edge_id_for(source, target)),
            source=source,
            target=target,
            source_handle=data.get("sourceHandle"),
            style=dict(data.get("style") or {}),
        )


@dataclass
class FlowGraph:
    """Nodes and edges of the flow currently being edited."""
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)
    results: Optional[Dict[str, Any]] = None

    def node_map(self) -> Dict[str, FlowNode]:
        return {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of(self, kind: NodeKind) -> List[FlowNode]:
        return [node for node in self.nodes if node.type is kind]

    def outgoing(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def incoming(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def dangling_edges(self) -> List[FlowEdge]:
        """Edges whose source or target is not a node of this graph."""
        node_ids = {node.id for node in self.nodes}
        return [
            edge for edge in self.edges
            if edge.source not in node_ids or edge.target not in node_ids
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowGraph":
        """Rebuild a graph saved with ``to_dict``; raises GraphFileError on malformed data."""
        try:
            return cls(
                nodes=[FlowNode.from_dict(node) for node in data.get("nodes", [])],
                edges=[FlowEdge.from_dict(edge) for edge in data.get("edges", [])],
                results=data.get("results"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise GraphFileError(f"Malformed graph data: {type(e).__name__}: {e}") from e
