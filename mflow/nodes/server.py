"""
mflow HTTP API
==============

Owns one graph store and one orchestrator and exposes graph editing,
validation and execution to a browser-side node editor.

To run:
    pip install fastapi uvicorn
    python -m mflow.nodes.server --port 8000

Endpoints:
    GET    /api/nodes                 node catalog
    GET    /api/graph                 current graph
    PUT    /api/graph                 replace graph with a workflow document
    POST   /api/graph/nodes           add a node
    PATCH  /api/graph/nodes/{id}      update node data
    DELETE /api/graph/nodes/{id}      remove a node and its edges
    POST   /api/graph/edges/check     would this connection be accepted?
    POST   /api/graph/edges           connect (replaces an occupied input)
    DELETE /api/graph/edges/{id}      disconnect
    GET    /api/validate              can the pipeline run?
    POST   /api/execute               run the pipeline on the engine
    GET    /api/presets               preset workflows
    POST   /api/presets/{id}          load a preset
    GET    /api/metadata              probe a local video file
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from mflow.core.config import Settings, load_config
from mflow.core.errors import NodeNotFoundError, WorkflowError
from mflow.core.logging import configure_logging, get_logger
from mflow.execution.engine import ExecutionEngine, create_engine
from mflow.execution.orchestrator import PipelineOrchestrator
from mflow.graph.kinds import NodeKind, get_nodes_json
from mflow.graph.model import Edge
from mflow.graph.store import GraphStore
from mflow.workflows.documents import workflow_from_dict
from mflow.workflows.presets import get_preset, list_presets

_log = get_logger(__name__)


def _graph_json(store: GraphStore) -> dict:
    return store.snapshot().to_dict()


def _parse_edge(body: dict) -> Edge:
    try:
        return Edge.from_dict(body)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Missing edge field: {e}") from e


def create_app(
    settings: Settings | None = None,
    engine: ExecutionEngine | None = None,
    store: GraphStore | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Runtime settings (default: defaults + MFLOW_* environment)
        engine: Engine transport (default: built from settings)
        store: Graph to serve (default: empty graph)
    """
    settings = settings or load_config()
    store = store if store is not None else GraphStore()
    orchestrator = PipelineOrchestrator(
        engine or create_engine(settings),
        policy=settings.execution_policy,
    )

    app = FastAPI(title="mflow")
    app.state.store = store
    app.state.orchestrator = orchestrator

    @app.exception_handler(NodeNotFoundError)
    async def node_not_found(request: Request, exc: NodeNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(WorkflowError)
    async def invalid_workflow(request: Request, exc: WorkflowError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/api/nodes")
    async def get_nodes():
        return get_nodes_json()

    @app.get("/api/graph")
    async def get_graph():
        return _graph_json(store)

    @app.put("/api/graph")
    async def put_graph(document: dict):
        workflow = workflow_from_dict(document)
        store.replace(workflow.nodes, workflow.edges)
        _log.info("api.graph_replaced", nodes=len(workflow.nodes), edges=len(workflow.edges))
        return _graph_json(store)

    @app.post("/api/graph/nodes")
    async def add_node(body: dict):
        kind = NodeKind.parse(body.get('type', body.get('kind')))
        if kind is None:
            raise HTTPException(status_code=400, detail=f"Unknown node type: {body.get('type')}")
        try:
            node = store.create_node(kind, body.get('data'), node_id=body.get('id'))
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return node.to_dict()

    @app.patch("/api/graph/nodes/{node_id}")
    async def update_node(node_id: str, patch: dict):
        return store.update_node_data(node_id, patch).to_dict()

    @app.delete("/api/graph/nodes/{node_id}")
    async def delete_node(node_id: str):
        store.remove_node(node_id)
        return _graph_json(store)

    @app.post("/api/graph/edges/check")
    async def check_edge(body: dict):
        return {"valid": store.can_connect(_parse_edge(body))}

    @app.post("/api/graph/edges")
    async def connect(body: dict):
        edge = store.connect(_parse_edge(body))
        if edge is None:
            raise HTTPException(status_code=422, detail="Connection not allowed")
        return edge.to_dict()

    @app.delete("/api/graph/edges/{edge_id}")
    async def disconnect(edge_id: str):
        if not store.disconnect(edge_id):
            raise HTTPException(status_code=404, detail=f"Edge not found: {edge_id}")
        return _graph_json(store)

    @app.get("/api/validate")
    async def validate():
        return orchestrator.validate(store.nodes).to_dict()

    @app.post("/api/execute")
    async def execute():
        result = await orchestrator.run(store)
        return {**result.to_dict(), "graph": _graph_json(store)}

    @app.get("/api/presets")
    async def presets():
        return list_presets()

    @app.post("/api/presets/{preset_id}")
    async def load_preset(preset_id: str):
        try:
            workflow = get_preset(preset_id)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}") from e
        store.replace(workflow.nodes, workflow.edges)
        return _graph_json(store)

    @app.get("/api/metadata")
    async def metadata(path: str):
        """Basic stream properties of a local video file."""
        from mflow.core.video import probe_video

        try:
            return probe_video(path).to_dict()
        except FileNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    return app


def main(argv: list[str] | None = None):
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="mflow API server")
    parser.add_argument('-c', '--config', help='Settings JSON file')
    parser.add_argument('-p', '--port', type=int, help='Port to run server on (default: 8000)')
    parser.add_argument('--host', type=str, help='Host to bind to (default: 127.0.0.1)')
    parser.add_argument('--workflow', help='Workflow JSON file to load at startup')
    args = parser.parse_args(argv)

    settings = load_config(args.config)
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    store = GraphStore()
    if args.workflow:
        from mflow.workflows.documents import load_workflow
        workflow = load_workflow(args.workflow)
        store.replace(workflow.nodes, workflow.edges)

    host = args.host or settings.host
    port = args.port or settings.port
    print("=" * 50)
    print("mflow API server")
    print(f"Listening on http://{host}:{port}")
    print("=" * 50)
    uvicorn.run(create_app(settings, store=store), host=host, port=port, log_level="warning")


if __name__ == "__main__":
    main()
