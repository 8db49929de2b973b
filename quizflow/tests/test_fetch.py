import asyncio
import json

import pytest
from aiohttp import web
from aiohttp import test_utils

from quizflow.editor.session import EditorSession
from quizflow.editor.store import GraphStore
from quizflow.errors import DocumentFetchError, SchemaIntegrityError
from quizflow.fetch.client import DocumentFetcher, LocalDocumentSource, fetch_documents


def build_app(documents, missing=()):
    app = web.Application()

    async def serve(request):
        name = request.match_info["name"]
        if name in missing or name not in documents:
            raise web.HTTPNotFound()
        return web.Response(text=documents[name], content_type="application/json")

    app.router.add_get("/quiz/{name}", serve)
    return app


def serialized(questions_doc, strings_doc, results_doc):
    return {
        "questions.json": json.dumps(questions_doc),
        "strings.json": json.dumps(strings_doc),
        "results.json": json.dumps(results_doc),
    }


async def _with_server(app, action):
    async with test_utils.TestServer(app) as server:
        return await action(str(server.make_url("/quiz/")))


class TestDocumentFetcher:
    """Test retrieving the documents over HTTP."""

    def test_fetch_all(self, questions_doc, strings_doc, results_doc):
        app = build_app(serialized(questions_doc, strings_doc, results_doc))

        async def action(base_url):
            async with DocumentFetcher(base_url) as fetcher:
                return await fetcher.fetch_all()

        documents = asyncio.run(_with_server(app, action))

        assert documents.questions == questions_doc
        assert documents.strings == strings_doc
        assert documents.results == results_doc

    def test_base_url_is_a_plain_prefix(self, questions_doc, strings_doc, results_doc):
        documents = {f"v2-{name}": body for name, body in serialized(questions_doc, strings_doc, results_doc).items()}
        app = build_app(documents)

        async def action(base_url):
            async with DocumentFetcher(base_url + "v2-") as fetcher:
                return await fetcher.fetch_all()

        documents = asyncio.run(_with_server(app, action))

        assert documents.questions == questions_doc

    def test_missing_file_named_in_error(self, questions_doc, strings_doc, results_doc):
        app = build_app(serialized(questions_doc, strings_doc, results_doc), missing=("strings.json",))

        async def action(base_url):
            async with DocumentFetcher(base_url) as fetcher:
                return await fetcher.fetch_all()

        with pytest.raises(DocumentFetchError) as excinfo:
            asyncio.run(_with_server(app, action))
        assert excinfo.value.file_name == "strings.json"
        assert "404" in str(excinfo.value)

    def test_invalid_json(self, questions_doc, strings_doc):
        documents = {"questions.json": "{not json", "strings.json": "{}", "results.json": "{}"}
        app = build_app(documents)

        async def action(base_url):
            async with DocumentFetcher(base_url) as fetcher:
                return await fetcher.fetch_file("questions.json")

        with pytest.raises(DocumentFetchError, match="invalid JSON"):
            asyncio.run(_with_server(app, action))

    def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            asyncio.run(DocumentFetcher("http://localhost/").fetch_file("questions.json"))


class TestLocalDocumentSource:

    def test_read_all(self, document_dir, questions_doc):
        documents = LocalDocumentSource(str(document_dir)).read_all()
        assert documents.questions == questions_doc

    def test_missing_file(self, document_dir):
        (document_dir / "results.json").unlink()

        with pytest.raises(DocumentFetchError) as excinfo:
            LocalDocumentSource(str(document_dir)).read_all()
        assert excinfo.value.file_name == "results.json"

    def test_fetch_documents_uses_directory(self, document_dir, strings_doc):
        documents = asyncio.run(fetch_documents(str(document_dir)))
        assert documents.strings == strings_doc


class TestSessionImport:
    """Importing through the session installs a laid out graph, or nothing."""

    def test_import_from_http(self, questions_doc, strings_doc, results_doc):
        app = build_app(serialized(questions_doc, strings_doc, results_doc))
        session = EditorSession(store=GraphStore())

        graph = asyncio.run(_with_server(app, session.import_from))

        assert {n.id for n in graph.nodes} == {"q1", "q2", "o1", "o2", "o3"}
        assert session.store.results == results_doc
        assert len({n.position.y for n in graph.nodes}) == 2

    def test_fetch_failure_keeps_previous_graph(self, document_dir, questions_doc, strings_doc, results_doc):
        session = EditorSession(store=GraphStore())
        asyncio.run(session.import_from(str(document_dir)))
        before = session.store.snapshot().to_dict()
        app = build_app(serialized(questions_doc, strings_doc, results_doc), missing=("results.json",))

        with pytest.raises(DocumentFetchError):
            asyncio.run(_with_server(app, session.import_from))
        assert session.store.snapshot().to_dict() == before

    def test_integrity_failure_keeps_previous_graph(self, document_dir, strings_doc):
        session = EditorSession(store=GraphStore())
        asyncio.run(session.import_from(str(document_dir)))
        before = session.store.snapshot().to_dict()
        del strings_doc["o1"]
        (document_dir / "strings.json").write_text(json.dumps(strings_doc), encoding="utf-8")

        with pytest.raises(SchemaIntegrityError):
            asyncio.run(session.import_from(str(document_dir)))
        assert session.store.snapshot().to_dict() == before


    def test_stale_import_discarded(self, document_dir, questions_doc, strings_doc, results_doc):
        """An import overtaken by a newer one returns None and installs nothing."""
        documents = serialized(questions_doc, strings_doc, results_doc)
        strings_doc["questions"]["data"][0]["heading"] = "Fresh"
        (document_dir / "strings.json").write_text(json.dumps(strings_doc), encoding="utf-8")
        session = EditorSession(store=GraphStore())

        async def scenario():
            release = asyncio.Event()

            async def serve(request):
                name = request.match_info["name"]
                if name == "results.json":
                    await release.wait()
                return web.Response(text=documents[name], content_type="application/json")

            app = web.Application()
            app.router.add_get("/quiz/{name}", serve)

            async with test_utils.TestServer(app) as server:
                stale = asyncio.create_task(session.import_from(str(server.make_url("/quiz/"))))
                await asyncio.sleep(0.05)
                fresh = await session.import_from(str(document_dir))
                release.set()
                return fresh, await stale

        fresh, stale = asyncio.run(scenario())

        assert fresh is not None
        assert stale is None
        assert session.generation == 2
        assert session.store.get_node("q1").data["label"] == "Fresh"
