"""
Connection handles and the node each one spawns when dropped on the canvas.
"""
from typing import Any, Callable, Dict, Optional
from enum import Enum

from ..types import NodeKind


def option_payload(node_id: str) -> Dict[str, Any]:
    return {"label": f"Option {node_id}"}


def question_payload(node_id: str) -> Dict[str, Any]:
    return {"label": f"Question {node_id}", "product1": "", "product2": ""}


class HandleKind(Enum):
    """Handles that spawn a node when a connection is dropped on empty canvas."""
    NEW_OPTION = ("newOption", NodeKind.OPTION, option_payload)
    GREY = ("grey", NodeKind.QUESTION, question_payload)

    def __init__(self, handle_id: str, target_kind: NodeKind,
                 payload: Callable[[str], Dict[str, Any]]):
        self.handle_id = handle_id
        self.target_kind = target_kind
        self._payload = payload

    def default_data(self, node_id: str) -> Dict[str, Any]:
        """Initial ``data`` for the node spawned from this handle."""
        return self._payload(node_id)

    @classmethod
    def resolve(cls, handle_id: Optional[str]) -> Optional["HandleKind"]:
        """Map a raw handle id to its kind; unknown handles give None."""
        for kind in cls:
            if kind.handle_id == handle_id:
                return kind
        return None
