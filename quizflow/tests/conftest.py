import pytest
import os
import json
from pathlib import Path
from typing import Dict, Any
import sys

# Keep test runs from writing log files
os.environ.setdefault("QUIZFLOW_LOG_FILE", "")
os.environ.setdefault("QUIZFLOW_LOG_LEVEL", "WARNING")

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from loguru import logger

from quizflow.editor.ids import NodeIdGenerator
from quizflow.editor.session import EditorSession
from quizflow.editor.store import GraphStore


def page(entries):
    return {"total": len(entries), "offset": 0, "limit": len(entries), "data": entries}


@pytest.fixture
def questions_doc() -> Dict[str, Any]:
    """Two questions: q1 offers o1 (terminal) and o2 (leads to q2); q2 offers o3."""
    return {
        "questions": page([
            {"questions": "q1", "min-selections": 1, "max-selections": 1},
            {"questions": "q2", "min-selections": 1, "max-selections": 2},
        ]),
        "q1": page([
            {"options": "o1"},
            {"options": "o2", "next": "q2"},
        ]),
        "q2": page([
            {"options": "o3"},
        ]),
    }


@pytest.fixture
def strings_doc() -> Dict[str, Any]:
    """Display text for q1, q2, o1, o2 and o3."""
    return {
        "questions": page([
            {
                "q": "q1",
                "heading": "What are you working on?",
                "sub-head": "Pick one",
                "btn": "Continue",
                "background": "bg-q1.png",
                "footerFragment": "/fragments/footer-q1",
            },
            {
                "q": "q2",
                "heading": "Which tools do you use?",
                "sub-head": "Pick up to two",
                "btn": "Next",
                "background": "bg-q2.png",
                "footerFragment": "/fragments/footer-q2",
            },
        ]),
        "o1": page([{"options": "o1", "title": "Photos", "text": "Edit photos", "icon": "photo.svg", "image": "o1.png"}]),
        "o2": page([{"options": "o2", "title": "Video", "text": "Cut video", "icon": "video.svg", "image": "o2.png"}]),
        "o3": page([{"options": "o3", "title": "Timeline", "text": "Edit on a timeline", "icon": "tl.svg", "image": "o3.png"}]),
    }


@pytest.fixture
def results_doc() -> Dict[str, Any]:
    return {
        "result": page([
            {"result": "o1", "basic-fragments": "photo-result"},
            {"result": "o3", "basic-fragments": "video-result"},
        ]),
    }


@pytest.fixture
def scenario_questions() -> Dict[str, Any]:
    """Only q1 is defined; o2 leads to q2, which lives in another document."""
    return {
        "questions": page([{"questions": "q1", "min-selections": 1, "max-selections": 1}]),
        "q1": page([{"options": "o1"}, {"options": "o2", "next": "q2"}]),
    }


@pytest.fixture
def scenario_strings() -> Dict[str, Any]:
    return {
        "questions": page([{"q": "q1", "heading": "First"}]),
        "o1": page([{"options": "o1", "title": "One"}]),
        "o2": page([{"options": "o2", "title": "Two"}]),
    }


@pytest.fixture
def logged_warnings():
    """Messages logged at WARNING or above while the test runs."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def document_dir(tmp_path: Path, questions_doc, strings_doc, results_doc) -> Path:
    """Directory holding the three sample documents as JSON files."""
    for name, document in (
        ("questions.json", questions_doc),
        ("strings.json", strings_doc),
        ("results.json", results_doc),
    ):
        (tmp_path / name).write_text(json.dumps(document), encoding="utf-8")
    return tmp_path


@pytest.fixture
def id_generator() -> NodeIdGenerator:
    return NodeIdGenerator()


@pytest.fixture
def session() -> EditorSession:
    """Fresh session with its own store and id counter."""
    return EditorSession(store=GraphStore(), id_generator=NodeIdGenerator())


@pytest.fixture
def imported_session(session, questions_doc, strings_doc, results_doc) -> EditorSession:
    session.import_documents(questions_doc, strings_doc, results_doc)
    return session
