"""
Workflow documents: JSON load/save.

A workflow file looks like::

    {
      "name": "Quick Convert",
      "nodes": [{"id": "input-1", "type": "videoSource", "data": {"filePath": ""}}],
      "edges": [{"source": "input-1", "target": "convert-1",
                 "sourceHandle": "video-output", "targetHandle": "video-input"}]
    }

Node ``type`` may use the legacy editor names (``inputVideo`` ...), and
edges may use the engine's ``from``/``to``/``fromHandle``/``toHandle``
keys.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from mflow.core.errors import WorkflowError
from mflow.core.logging import get_logger
from mflow.graph.model import Edge, Node

_log = get_logger(__name__)


@dataclass
class Workflow:
    id: str = ""
    name: str = ""
    description: str = ""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    category: str = "custom"


def workflow_from_dict(data: dict) -> Workflow:
    """
    Parse a workflow document.

    Raises:
        WorkflowError: If nodes or edges are missing required keys
    """
    if not isinstance(data, dict):
        raise WorkflowError("Workflow document must be a JSON object")
    try:
        nodes = [Node.from_dict(n) for n in data.get('nodes', [])]
        edges = [Edge.from_dict(e) for e in data.get('edges', data.get('connections', []))]
    except KeyError as e:
        raise WorkflowError(f"Invalid workflow document: missing {e}") from e
    except (TypeError, AttributeError) as e:
        raise WorkflowError(f"Invalid workflow document: {e}") from e

    ids = [n.id for n in nodes]
    if len(ids) != len(set(ids)):
        raise WorkflowError("Invalid workflow document: duplicate node ids")
    for raw, node in zip(data.get('nodes', []), nodes):
        if node.kind is None:
            _log.warning("workflow.unknown_kind", node=node.id,
                         kind=raw.get('type', raw.get('kind')))

    return Workflow(
        id=str(data.get('id', '')),
        name=str(data.get('name', '')),
        description=str(data.get('description', '')),
        nodes=nodes,
        edges=edges,
        category=str(data.get('category', 'custom')),
    )


def workflow_to_dict(workflow: Workflow) -> dict:
    return {
        'id': workflow.id,
        'name': workflow.name,
        'description': workflow.description,
        'category': workflow.category,
        'nodes': [n.to_dict() for n in workflow.nodes],
        'edges': [e.to_dict() for e in workflow.edges],
    }


def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        WorkflowError: If the file is not a valid workflow document
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {path}")
    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise WorkflowError(f"Invalid JSON in workflow file: {e}") from e
    return workflow_from_dict(data)


def save_workflow(workflow: Workflow, path: str | Path) -> None:
    with open(Path(path), 'w') as f:
        json.dump(workflow_to_dict(workflow), f, indent=2)
