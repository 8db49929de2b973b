from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
import uvicorn

from .config import settings
from .editor.session import ConnectionEndEvent, EditorSession, Viewport
from .editor.store import GraphStore
from .errors import (
    QuizFlowError,
    DocumentFetchError,
    SchemaDocumentError,
    SchemaIntegrityError,
    GraphIntegrityError,
    LayoutError,
)
from .utils.logger import app_logger


logger = app_logger.bind(component="api_server")

app = FastAPI(title="Quiz Flow Editor API", version="0.1.0")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize the editing session, saved to disk when a storage path is configured
session = EditorSession(store=GraphStore(settings.graph_storage_path or None))


class GraphDataResponse(BaseModel):
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]


class ImportRequest(BaseModel):
    base_url: str = Field(default_factory=lambda: settings.base_url)
    direction: str = "TB"


class InlineImportRequest(BaseModel):
    questions: Dict[str, Any]
    strings: Dict[str, Any]
    results: Optional[Dict[str, Any]] = None
    direction: str = "TB"


class LayoutRequest(BaseModel):
    direction: str = "TB"


class ConnectionStartRequest(BaseModel):
    node_id: str
    handle_id: Optional[str] = None


class ConnectionEndRequest(BaseModel):
    client_x: float
    client_y: float
    over_pane: bool = True


class ViewportRequest(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    origin_left: float = 0.0
    origin_top: float = 0.0


class FocusRequest(BaseModel):
    window_width: float
    window_height: float


class ExportResponse(BaseModel):
    questions: Dict[str, Any]
    strings: Dict[str, Any]


def _http_error(error: QuizFlowError) -> HTTPException:
    if isinstance(error, DocumentFetchError):
        status = 502
    elif isinstance(error, (SchemaDocumentError, SchemaIntegrityError)):
        status = 422
    elif isinstance(error, LayoutError):
        status = 400
    elif isinstance(error, GraphIntegrityError):
        status = 409
    else:
        status = 500
    logger.error(f"{type(error).__name__}: {error}")
    return HTTPException(status_code=status, detail=str(error))


def _graph_response() -> GraphDataResponse:
    graph = session.store.snapshot().to_dict()
    return GraphDataResponse(nodes=graph["nodes"], edges=graph["edges"])


@app.get("/api/graph", response_model=GraphDataResponse)
async def get_graph():
    """Get the graph currently being edited."""
    return _graph_response()


@app.post("/api/import", response_model=GraphDataResponse)
async def import_graph(request: ImportRequest):
    """Fetch the three documents from a base URL and install the result."""
    try:
        graph = await session.import_from(request.base_url, request.direction)
    except QuizFlowError as e:
        raise _http_error(e)
    if graph is None:
        raise HTTPException(status_code=409, detail="Import superseded by a newer import")
    return _graph_response()


@app.post("/api/import/documents", response_model=GraphDataResponse)
async def import_inline(request: InlineImportRequest):
    """Install documents posted in the request body."""
    try:
        session.import_documents(request.questions, request.strings, request.results, request.direction)
    except QuizFlowError as e:
        raise _http_error(e)
    return _graph_response()


@app.post("/api/layout", response_model=GraphDataResponse)
async def relayout(request: LayoutRequest):
    """Re-run the automatic layout."""
    try:
        session.relayout(request.direction)
    except QuizFlowError as e:
        raise _http_error(e)
    return _graph_response()


@app.post("/api/questions")
async def add_question():
    """Add a free-standing question."""
    node = session.add_question()
    return {"node": node.to_dict()}


@app.post("/api/connections/start")
async def connection_start(request: ConnectionStartRequest):
    """Record the node and handle a connection drag started from."""
    session.connect_start(request.node_id, request.handle_id)
    return {"pending": True}


@app.post("/api/connections/end")
async def connection_end(request: ConnectionEndRequest):
    """Finish a connection drag; may spawn a node and an edge."""
    try:
        created = session.connect_end(
            ConnectionEndEvent(client_x=request.client_x, client_y=request.client_y, over_pane=request.over_pane)
        )
    except QuizFlowError as e:
        raise _http_error(e)
    if created is None:
        return {"node": None, "edge": None}
    node, edge = created
    return {"node": node.to_dict(), "edge": edge.to_dict()}


@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, fields: Dict[str, Any]):
    """Merge edited fields into a node's data."""
    try:
        node = session.update_node_data(node_id, fields)
    except GraphIntegrityError as e:
        logger.error(f"Error updating node: {e}")
        raise HTTPException(status_code=404, detail=str(e))
    return {"node": node.to_dict()}


@app.put("/api/viewport")
async def set_viewport(request: ViewportRequest):
    """Report the canvas pan/zoom used to place dropped nodes."""
    session.viewport = Viewport(**request.model_dump())
    return request.model_dump()


@app.post("/api/nodes/{node_id}/focus")
async def focus_node(node_id: str, request: FocusRequest):
    """Double-click: zoom onto a node, or restore the previous view."""
    try:
        viewport = session.toggle_focus(node_id, request.window_width, request.window_height)
    except GraphIntegrityError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"x": viewport.x, "y": viewport.y, "zoom": viewport.zoom}


@app.get("/api/export", response_model=ExportResponse)
async def export_graph():
    """Rebuild the questions and strings documents."""
    exported = session.export()
    return ExportResponse(questions=exported.questions, strings=exported.strings)


@app.get("/api/stats")
async def get_stats():
    """Get graph statistics."""
    return session.store.get_stats()


def run(host: Optional[str] = None, port: Optional[int] = None):
    """Serve the API with uvicorn."""
    host = host or settings.api_host
    port = port or settings.api_port
    logger.info(f"Starting Quiz Flow Editor API server on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
