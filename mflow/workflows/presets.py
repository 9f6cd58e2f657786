"""
Preset workflows offered by the editor's workflow menu.
"""

import copy

from mflow.graph.kinds import NodeKind
from mflow.workflows.documents import Workflow, workflow_from_dict


def _node(node_id: str, kind: NodeKind, **data) -> dict:
    return {'id': node_id, 'type': kind.value, 'data': {**kind.default_data(), **data}}


def _edge(edge_id: str, source: str, target: str,
          source_handle: str = 'video-output', target_handle: str = 'video-input') -> dict:
    return {'id': edge_id, 'source': source, 'target': target,
            'sourceHandle': source_handle, 'targetHandle': target_handle}


PRESET_WORKFLOWS = [
    {
        'id': 'quick-convert',
        'name': 'Quick Convert',
        'description': 'Simple video format conversion',
        'nodes': [
            _node('input-1', NodeKind.VIDEO_SOURCE),
            _node('convert-1', NodeKind.VIDEO_CONVERT),
        ],
        'edges': [_edge('e1-2', 'input-1', 'convert-1')],
    },
    {
        'id': 'quality-analysis',
        'name': 'Quality Analysis',
        'description': 'Compare two videos with VMAF',
        'nodes': [
            _node('ref-1', NodeKind.VIDEO_SOURCE),
            _node('test-1', NodeKind.VIDEO_SOURCE),
            _node('vmaf-1', NodeKind.QUALITY_COMPARE),
        ],
        'edges': [
            _edge('e1-3', 'ref-1', 'vmaf-1', target_handle='reference-input'),
            _edge('e2-3', 'test-1', 'vmaf-1', target_handle='test-input'),
        ],
    },
    {
        'id': 'frame-extraction',
        'name': 'Frame Extraction',
        'description': 'Extract frames from video',
        'nodes': [
            _node('input-1', NodeKind.VIDEO_SOURCE),
            _node('sequence-1', NodeKind.SEQUENCE_EXTRACT),
        ],
        'edges': [_edge('e1-2', 'input-1', 'sequence-1')],
    },
    {
        'id': 'trim-and-convert',
        'name': 'Trim and Convert',
        'description': 'Cut a section of a video and convert it',
        'nodes': [
            _node('input-1', NodeKind.VIDEO_SOURCE),
            _node('trim-1', NodeKind.VIDEO_TRIM),
            _node('convert-1', NodeKind.VIDEO_CONVERT),
            _node('view-1', NodeKind.VIEWER),
        ],
        'edges': [
            _edge('e1-2', 'input-1', 'trim-1'),
            _edge('e2-3', 'trim-1', 'convert-1'),
            _edge('e2-3d', 'trim-1', 'convert-1', 'data-output', 'data-input'),
            _edge('e3-4', 'convert-1', 'view-1'),
        ],
    },
    {
        'id': 'audio-convert',
        'name': 'Audio Convert',
        'description': 'Convert an audio file and inspect the spectrum',
        'nodes': [
            _node('audio-1', NodeKind.AUDIO_SOURCE),
            _node('convert-1', NodeKind.AUDIO_CONVERT),
            _node('spectrum-1', NodeKind.SPECTRUM_ANALYZER),
        ],
        'edges': [
            _edge('e1-2', 'audio-1', 'convert-1', 'audio-output', 'audio-input'),
            _edge('e2-3', 'convert-1', 'spectrum-1', 'audio-output', 'audio-input'),
        ],
    },
]


def list_presets() -> list[dict]:
    """Preset summaries (id, name, description)."""
    return [
        {'id': p['id'], 'name': p['name'], 'description': p['description']}
        for p in PRESET_WORKFLOWS
    ]


def get_preset(preset_id: str) -> Workflow:
    """
    Build a fresh Workflow for a preset.

    Raises:
        KeyError: If there is no preset with that id
    """
    for preset in PRESET_WORKFLOWS:
        if preset['id'] == preset_id:
            workflow = workflow_from_dict(copy.deepcopy(preset))
            workflow.category = 'preset'
            return workflow
    raise KeyError(preset_id)
