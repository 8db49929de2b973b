import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import (
    QuestionsDocument,
    StringsDocument,
    QuestionCollection,
    OptionLinkCollection,
    QuestionStringsCollection,
    OptionStringsCollection,
    QuestionEntry,
    OptionLinkEntry,
    QuestionStringsEntry,
    OptionStringsEntry,
)
from ..config import settings
from ..types import FlowGraph, FlowNode, NodeKind
from ..utils.logger import app_logger


logger = app_logger.bind(component="exporter")


@dataclass
class ExportedDocuments:
    """The questions and strings documents rebuilt from a graph."""
    questions: Dict[str, Any]
    strings: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"questions": self.questions, "strings": self.strings}

    def write(self, directory: str) -> List[Path]:
        """Write both documents into ``directory`` and return their paths."""
        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        written = []
        for file_name, document in (
            (settings.questions_file, self.questions),
            (settings.strings_file, self.strings),
        ):
            path = target / file_name
            with open(path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            written.append(path)
        logger.info(f"Wrote {', '.join(str(p) for p in written)}")
        return written


def _question_entry(node: FlowNode) -> QuestionEntry:
    return QuestionEntry(
        id=node.id,
        max_selections=node.data.get("maxSelections"),
        min_selections=node.data.get("minSelections"),
    )


def _question_strings(node: FlowNode) -> QuestionStringsEntry:
    return QuestionStringsEntry(
        id=node.id,
        heading=node.data.get("label"),
        sub_head=node.data.get("subtitle"),
        btn=node.data.get("buttonLabel"),
        background=node.data.get("backgroundImage"),
        footer_fragment=node.data.get("footerFragment"),
    )


def _option_strings(node: FlowNode) -> OptionStringsEntry:
    return OptionStringsEntry(
        id=node.id,
        title=node.data.get("label"),
        text=node.data.get("text"),
        icon=node.data.get("icon"),
        image=node.data.get("image"),
    )


def _option_links(graph: FlowGraph, question: FlowNode,
                  node_map: Dict[str, FlowNode]) -> List[OptionLinkEntry]:
    links = []
    for edge in graph.outgoing(question.id):
        target: Optional[FlowNode] = node_map.get(edge.target)
        if target is None or not target.is_option:
            logger.warning(f"Skipping edge {edge.id}: target {edge.target} is not an option")
            continue
        links.append(OptionLinkEntry(id=target.id, next=target.data.get("next")))
    return links


def build_documents(graph: FlowGraph):
    """Return the (QuestionsDocument, StringsDocument) pair for ``graph``."""
    node_map = graph.node_map()
    question_nodes = graph.nodes_of(NodeKind.QUESTION)
    option_nodes = graph.nodes_of(NodeKind.OPTION)

    questions = QuestionsDocument(
        questions=QuestionCollection.of([_question_entry(node) for node in question_nodes]),
        options={
            node.id: OptionLinkCollection.of(_option_links(graph, node, node_map))
            for node in question_nodes
        },
    )
    strings = StringsDocument(
        questions=QuestionStringsCollection.of([_question_strings(node) for node in question_nodes]),
        options={node.id: OptionStringsCollection.of([_option_strings(node)]) for node in option_nodes},
    )
    return questions, strings


def export_documents(graph: FlowGraph) -> ExportedDocuments:
    """Serialize the graph back into the questions and strings documents.

    Only ``question`` and ``option`` nodes take part; the results document is
    not rebuilt. The graph is not modified.
    """
    questions, strings = build_documents(graph)
    exported = ExportedDocuments(questions=questions.to_json(), strings=strings.to_json())

    logger.debug(f"Exported Questions Data: {json.dumps(exported.questions, indent=2)}")
    logger.debug(f"Exported Strings Data: {json.dumps(exported.strings, indent=2)}")
    logger.info(
        f"Exported {len(questions.questions.data)} questions and {len(strings.options)} options"
    )
    return exported
