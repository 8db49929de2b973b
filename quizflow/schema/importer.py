from typing import Any, Dict, List, Optional

from .models import (
    QuestionsDocument,
    StringsDocument,
    ResultsDocument,
    QuestionEntry,
    QuestionStringsEntry,
    OptionLinkEntry,
    OptionStringsEntry,
)
from ..editor.handles import HandleKind
from ..editor.ids import NodeIdGenerator
from ..errors import SchemaDocumentError, SchemaIntegrityError
from ..types import FlowEdge, FlowGraph, FlowNode, NodeKind, edge_id_for
from ..utils.logger import app_logger


logger = app_logger.bind(component="importer")


def _question_data(entry: QuestionEntry, strings: QuestionStringsEntry) -> Dict[str, Any]:
    return {
        "label": strings.heading,
        "subtitle": strings.sub_head,
        "buttonLabel": strings.btn,
        "backgroundImage": strings.background,
        "footerFragment": strings.footer_fragment,
        "maxSelections": entry.max_selections,
        "minSelections": entry.min_selections,
    }


def _option_data(link: OptionLinkEntry, strings: OptionStringsEntry) -> Dict[str, Any]:
    return {
        "label": strings.title,
        "text": strings.text,
        "icon": strings.icon,
        "image": strings.image,
        "next": link.next,
    }


def _require_complete(name: str, collection) -> None:
    if not collection.is_complete:
        raise SchemaDocumentError(
            f"{name}: partial page (offset={collection.offset}, "
            f"{len(collection.data)} of {collection.total} entries)"
        )


def _check_pages(questions: QuestionsDocument, strings: StringsDocument,
                 results: Optional[ResultsDocument]) -> None:
    _require_complete("questions.json/questions", questions.questions)
    for key, collection in questions.options.items():
        _require_complete(f"questions.json/{key}", collection)
    _require_complete("strings.json/questions", strings.questions)
    for key, collection in strings.options.items():
        _require_complete(f"strings.json/{key}", collection)
    if results is not None:
        for key, collection in results.collections.items():
            _require_complete(f"results.json/{key}", collection)


def parse_documents(
    questions: Any,
    strings: Any,
    results: Any = None,
    id_generator: Optional[NodeIdGenerator] = None,
) -> FlowGraph:
    """Build the flow graph described by the questions and strings documents.

    Accepts raw JSON payloads or already-validated documents. The import is
    all-or-nothing: every reference that would leave a node without its data
    is collected and reported in a single SchemaIntegrityError, and no graph
    is returned in that case. An option whose ``next`` names an undefined
    question is kept as is and logged.
    """
    if not isinstance(questions, QuestionsDocument):
        questions = QuestionsDocument.from_json(questions)
    if not isinstance(strings, StringsDocument):
        strings = StringsDocument.from_json(strings)
    if results is not None and not isinstance(results, ResultsDocument):
        results = ResultsDocument.from_json(results)

    _check_pages(questions, strings, results)

    question_strings = {entry.id: entry for entry in strings.questions.data}
    question_ids = {entry.id for entry in questions.questions.data}

    problems: List[str] = []
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
    options_seen: Dict[str, FlowNode] = {}
    edge_ids = set()

    for entry in questions.questions.data:
        text = question_strings.get(entry.id)
        if text is None:
            problems.append(f"question '{entry.id}' has no entry in strings.json/questions")
            continue
        nodes.append(FlowNode(id=entry.id, type=NodeKind.QUESTION, data=_question_data(entry, text)))

    for entry in questions.questions.data:
        links = questions.options.get(entry.id)
        if links is None:
            logger.debug(f"Question {entry.id} has no options collection")
            continue

        for link in links.data:
            if link.id in question_ids:
                problems.append(f"option '{link.id}' of question '{entry.id}' reuses a question id")
                continue
            if link.next is not None and link.next not in question_ids:
                logger.warning(
                    f"Option {link.id} of question {entry.id} leads to question {link.next}, "
                    f"which questions.json does not define"
                )

            shared = options_seen.get(link.id)
            if shared is not None:
                logger.warning(f"Option {link.id} is shared by more than one question")
                if shared.data.get("next") != link.next:
                    logger.warning(
                        f"Option {link.id} leads to {shared.data.get('next')!r} under one question and "
                        f"{link.next!r} under {entry.id}, keeping {shared.data.get('next')!r}"
                    )
            else:
                page = strings.options.get(link.id)
                if page is None or not page.data:
                    problems.append(f"option '{link.id}' has no entry in strings.json")
                    continue
                if len(page.data) > 1:
                    logger.warning(f"Option {link.id} has {len(page.data)} string entries, using the first")
                option = FlowNode(id=link.id, type=NodeKind.OPTION, data=_option_data(link, page.data[0]))
                options_seen[link.id] = option
                nodes.append(option)

            edge_id = edge_id_for(entry.id, link.id)
            if edge_id in edge_ids:
                logger.warning(f"Duplicate option {link.id} under question {entry.id} ignored")
                continue
            edge_ids.add(edge_id)
            edges.append(FlowEdge(
                id=edge_id,
                source=entry.id,
                target=link.id,
                source_handle=HandleKind.NEW_OPTION.handle_id,
            ))

    for key in questions.options:
        if key not in question_ids:
            problems.append(f"questions.json has options for unknown question '{key}'")

    if problems:
        logger.error(f"Import rejected: {len(problems)} integrity problem(s)")
        raise SchemaIntegrityError(problems)

    if id_generator is not None:
        id_generator.reserve(node.id for node in nodes)

    graph = FlowGraph(
        nodes=nodes,
        edges=edges,
        results=results.to_json() if results is not None else None,
    )
    logger.info(
        f"Imported {len(graph.nodes_of(NodeKind.QUESTION))} questions, "
        f"{len(graph.nodes_of(NodeKind.OPTION))} options, {len(edges)} edges"
    )
    return graph
