"""CLI entrypoint for importing, laying out and exporting quiz flows."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import settings
from .editor.session import EditorSession
from .editor.store import GraphStore
from .errors import GraphFileError, QuizFlowError
from .layout.engine import LayoutDirection
from .types import FlowGraph
from .utils.logger import app_logger


logger = app_logger.bind(component="cli")


def _read_graph(path: str) -> FlowGraph:
    with open(path, 'r', encoding='utf-8') as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise GraphFileError(f"{path} is not valid JSON: {e}") from e
    return FlowGraph.from_dict(payload)


def _write_graph(graph: FlowGraph, path: str):
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = graph.to_dict()
    if graph.results is not None:
        payload["results"] = graph.results
    output_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Graph saved to: {output_path.resolve()}")


def _loaded_session(graph_path: str) -> EditorSession:
    store = GraphStore()
    store.set_graph(_read_graph(graph_path))
    return EditorSession(store=store)


def cmd_import(args: argparse.Namespace) -> int:
    session = EditorSession()
    graph = asyncio.run(session.import_from(args.source, args.direction))
    _write_graph(graph, args.output)
    return 0


def cmd_layout(args: argparse.Namespace) -> int:
    session = _loaded_session(args.graph)
    graph = session.relayout(args.direction)
    _write_graph(graph, args.output or args.graph)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    session = _loaded_session(args.graph)
    session.export().write(args.output_dir)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .api_server import run

    run(host=args.host, port=args.port)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    directions = [d.value for d in LayoutDirection]
    parser = argparse.ArgumentParser(description="Quiz flow authoring tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Build a laid out graph from quiz documents.")
    import_parser.add_argument(
        "--source",
        default=settings.base_url,
        help="Base URL or directory holding questions.json, strings.json and results.json.",
    )
    import_parser.add_argument("--output", default="graph.json", help="Where to save the graph JSON.")
    import_parser.add_argument("--direction", default=settings.layout_direction, choices=directions)
    import_parser.set_defaults(handler=cmd_import)

    layout_parser = subparsers.add_parser("layout", help="Re-run the automatic layout on a graph.")
    layout_parser.add_argument("--graph", required=True, help="Graph JSON to lay out.")
    layout_parser.add_argument("--output", default="", help="Output path (defaults to overwriting --graph).")
    layout_parser.add_argument("--direction", default=settings.layout_direction, choices=directions)
    layout_parser.set_defaults(handler=cmd_layout)

    export_parser = subparsers.add_parser("export", help="Write questions.json and strings.json for a graph.")
    export_parser.add_argument("--graph", required=True, help="Graph JSON to export.")
    export_parser.add_argument("--output-dir", default="export", help="Directory for the documents.")
    export_parser.set_defaults(handler=cmd_export)

    serve_parser = subparsers.add_parser("serve", help="Run the editor HTTP API.")
    serve_parser.add_argument("--host", default=settings.api_host)
    serve_parser.add_argument("--port", type=int, default=settings.api_port)
    serve_parser.set_defaults(handler=cmd_serve)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return args.handler(args)
    except QuizFlowError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
