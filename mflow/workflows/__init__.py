"""
Workflow module - workflow documents and presets.
"""

from mflow.workflows.documents import (
    Workflow,
    workflow_from_dict,
    workflow_to_dict,
    load_workflow,
    save_workflow,
)
from mflow.workflows.presets import PRESET_WORKFLOWS, list_presets, get_preset

__all__ = [
    "Workflow",
    "workflow_from_dict",
    "workflow_to_dict",
    "load_workflow",
    "save_workflow",
    "PRESET_WORKFLOWS",
    "list_presets",
    "get_preset",
]
