import pytest

from quizflow.editor.ids import NodeIdGenerator
from quizflow.errors import SchemaDocumentError, SchemaIntegrityError
from quizflow.schema.importer import parse_documents
from quizflow.types import NodeKind

from conftest import page


class TestParseDocuments:
    """Test building the flow graph from the normalized documents."""

    def test_example_scenario(self, scenario_questions, scenario_strings, logged_warnings):
        """One question with a terminal option and an option leading on."""
        graph = parse_documents(scenario_questions, scenario_strings, {})

        q1_edges = graph.outgoing("q1")
        assert len(graph.nodes_of(NodeKind.QUESTION)) == 1
        assert len(graph.nodes_of(NodeKind.OPTION)) == 2
        assert len(graph.edges) == 2
        assert {e.target for e in q1_edges} == {"o1", "o2"}
        assert graph.get_node("q1").data["minSelections"] == 1
        assert graph.get_node("q1").data["maxSelections"] == 1
        assert graph.get_node("o1").data["next"] is None
        assert graph.get_node("o2").data["next"] == "q2"
        assert graph.dangling_edges() == []
        assert any("o2" in message and "q2" in message for message in logged_warnings)

    def test_question_nodes_join_strings(self, questions_doc, strings_doc, results_doc):
        graph = parse_documents(questions_doc, strings_doc, results_doc)

        q1 = graph.get_node("q1")
        assert q1.type is NodeKind.QUESTION
        assert q1.data == {
            "label": "What are you working on?",
            "subtitle": "Pick one",
            "buttonLabel": "Continue",
            "backgroundImage": "bg-q1.png",
            "footerFragment": "/fragments/footer-q1",
            "maxSelections": 1,
            "minSelections": 1,
        }

    def test_option_nodes_join_strings(self, questions_doc, strings_doc, results_doc):
        graph = parse_documents(questions_doc, strings_doc, results_doc)

        o2 = graph.get_node("o2")
        assert o2.type is NodeKind.OPTION
        assert o2.data == {
            "label": "Video",
            "text": "Cut video",
            "icon": "video.svg",
            "image": "o2.png",
            "next": "q2",
        }

    def test_edges_link_questions_to_options(self, questions_doc, strings_doc, results_doc):
        graph = parse_documents(questions_doc, strings_doc, results_doc)

        assert {(e.source, e.target) for e in graph.edges} == {("q1", "o1"), ("q1", "o2"), ("q2", "o3")}
        assert all(e.id == f"e{e.source}-{e.target}" for e in graph.edges)
        assert all(e.source_handle == "newOption" for e in graph.edges)
        assert graph.dangling_edges() == []

    def test_results_are_carried(self, questions_doc, strings_doc, results_doc):
        graph = parse_documents(questions_doc, strings_doc, results_doc)
        assert graph.results == results_doc

    def test_shared_option_created_once(self, questions_doc, strings_doc, results_doc):
        questions_doc["q2"] = page([{"options": "o3"}, {"options": "o1"}])

        graph = parse_documents(questions_doc, strings_doc, results_doc)

        assert [n.id for n in graph.nodes].count("o1") == 1
        assert len(graph.incoming("o1")) == 2

    def test_shared_option_conflicting_next_logged(self, questions_doc, strings_doc, logged_warnings):
        questions_doc["q2"] = page([{"options": "o3"}, {"options": "o2"}])

        graph = parse_documents(questions_doc, strings_doc)

        assert graph.get_node("o2").data["next"] == "q2"
        assert any("o2" in message and "keeping 'q2'" in message for message in logged_warnings)

    def test_shared_option_same_next_no_conflict(self, questions_doc, strings_doc, logged_warnings):
        questions_doc["q2"] = page([{"options": "o3"}, {"options": "o1"}])

        parse_documents(questions_doc, strings_doc)

        assert not any("keeping" in message for message in logged_warnings)

    def test_question_without_options_collection(self, questions_doc, strings_doc, results_doc):
        del questions_doc["q2"]
        graph = parse_documents(questions_doc, strings_doc, results_doc)

        assert graph.get_node("q2") is not None
        assert graph.outgoing("q2") == []

    def test_reserves_imported_ids(self, questions_doc, strings_doc, results_doc):
        questions_doc["questions"] = page(questions_doc["questions"]["data"] + [{"questions": "node1"}])
        strings_doc["questions"] = page(strings_doc["questions"]["data"] + [{"q": "node1", "heading": "Imported"}])
        generator = NodeIdGenerator()

        parse_documents(questions_doc, strings_doc, results_doc, id_generator=generator)

        assert generator.next_id() == "node2"


class TestImportIntegrity:
    """Integrity rules applied while importing."""

    def test_missing_question_strings(self, questions_doc, strings_doc):
        strings_doc["questions"] = page(strings_doc["questions"]["data"][:1])

        with pytest.raises(SchemaIntegrityError) as excinfo:
            parse_documents(questions_doc, strings_doc)
        assert any("'q2'" in problem for problem in excinfo.value.problems)

    def test_missing_option_strings(self, questions_doc, strings_doc):
        del strings_doc["o3"]

        with pytest.raises(SchemaIntegrityError, match="o3"):
            parse_documents(questions_doc, strings_doc)

    def test_next_to_undefined_question_keeps_option(self, questions_doc, strings_doc, logged_warnings):
        questions_doc["q2"] = page([{"options": "o3", "next": "q9"}])

        graph = parse_documents(questions_doc, strings_doc)

        assert graph.get_node("o3").data["next"] == "q9"
        assert graph.get_node("q9") is None
        assert any("q9" in message for message in logged_warnings)

    def test_option_reusing_question_id(self, questions_doc, strings_doc):
        questions_doc["q2"] = page([{"options": "q1"}])

        with pytest.raises(SchemaIntegrityError, match="reuses a question id"):
            parse_documents(questions_doc, strings_doc)

    def test_options_for_unknown_question(self, questions_doc, strings_doc):
        questions_doc["q7"] = page([])

        with pytest.raises(SchemaIntegrityError, match="q7"):
            parse_documents(questions_doc, strings_doc)

    def test_all_problems_reported_together(self, questions_doc, strings_doc):
        del strings_doc["o1"]
        del strings_doc["o3"]

        with pytest.raises(SchemaIntegrityError) as excinfo:
            parse_documents(questions_doc, strings_doc)
        assert len(excinfo.value.problems) == 2

    def test_failed_import_does_not_reserve_ids(self, questions_doc, strings_doc):
        del strings_doc["o1"]
        generator = NodeIdGenerator()

        with pytest.raises(SchemaIntegrityError):
            parse_documents(questions_doc, strings_doc, id_generator=generator)
        assert generator.next_id() == "node1"

    def test_partial_page_rejected(self, questions_doc, strings_doc):
        questions_doc["q1"]["total"] = 5

        with pytest.raises(SchemaDocumentError, match="partial page"):
            parse_documents(questions_doc, strings_doc)
