"""
Node kinds, port tags and their classification.

Every rule in the graph engine (connection checks, propagation,
result merging) is phrased in terms of the tables here rather than
raw type strings. ``NODE_DEFINITIONS`` must have one entry per
``NodeKind``; the module refuses to import otherwise.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MediaKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    DATA = "data"


class NodeRole(Enum):
    LEAF_PRODUCER = "leaf_producer"   # emits a user-selected file
    PASS_THROUGH = "pass_through"     # forwards its input, emits parameters
    TRANSFORM = "transform"           # previews its input until executed
    TERMINAL = "terminal"             # consumes only


class Handle(str, Enum):
    """Port tags. Outputs are edge sources, inputs are edge targets."""
    VIDEO_OUTPUT = "video-output"
    VIDEO_INPUT = "video-input"
    AUDIO_OUTPUT = "audio-output"
    AUDIO_INPUT = "audio-input"
    DATA_OUTPUT = "data-output"
    DATA_INPUT = "data-input"
    REFERENCE_INPUT = "reference-input"
    TEST_INPUT = "test-input"

    @classmethod
    def parse(cls, value: "str | Handle | None") -> "Handle | str | None":
        """Return the matching Handle, or the raw value if it is not a known tag."""
        if value is None or value == "":
            return None
        try:
            return cls(value)
        except ValueError:
            return value

    @property
    def media(self) -> MediaKind:
        return _HANDLE_MEDIA[self]

    @property
    def is_output(self) -> bool:
        return self.value.endswith("-output")


_HANDLE_MEDIA = {
    Handle.VIDEO_OUTPUT: MediaKind.VIDEO,
    Handle.VIDEO_INPUT: MediaKind.VIDEO,
    Handle.REFERENCE_INPUT: MediaKind.VIDEO,
    Handle.TEST_INPUT: MediaKind.VIDEO,
    Handle.AUDIO_OUTPUT: MediaKind.AUDIO,
    Handle.AUDIO_INPUT: MediaKind.AUDIO,
    Handle.DATA_OUTPUT: MediaKind.DATA,
    Handle.DATA_INPUT: MediaKind.DATA,
}


class NodeKind(str, Enum):
    VIDEO_SOURCE = "videoSource"
    AUDIO_SOURCE = "audioSource"
    VIDEO_TRIM = "videoTrim"
    AUDIO_TRIM = "audioTrim"
    VIDEO_CONVERT = "videoConvert"
    AUDIO_CONVERT = "audioConvert"
    VIEWER = "viewer"
    GRID_VIEWER = "gridViewer"
    SEQUENCE_EXTRACT = "sequenceExtract"
    SPECTRUM_ANALYZER = "spectrumAnalyzer"
    VIDEO_INFO = "videoInfo"
    AUDIO_INFO = "audioInfo"
    QUALITY_COMPARE = "qualityCompare"

    @classmethod
    def _missing_(cls, value):
        # Workflow files saved by earlier editor versions
        if isinstance(value, str) and value in LEGACY_KIND_NAMES:
            return cls(LEGACY_KIND_NAMES[value])
        return None

    @classmethod
    def parse(cls, value: "str | NodeKind | None") -> "NodeKind | None":
        """Return the matching kind, or None for an unrecognized name."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def definition(self) -> "NodeDefinition":
        return NODE_DEFINITIONS[self]

    @property
    def role(self) -> NodeRole:
        return self.definition.role

    @property
    def media(self) -> MediaKind:
        return self.definition.media

    @property
    def produces_video(self) -> bool:
        return self.media is MediaKind.VIDEO and self.role is not NodeRole.TERMINAL

    @property
    def produces_audio(self) -> bool:
        return self.media is MediaKind.AUDIO and self.role is not NodeRole.TERMINAL

    @property
    def produces_params(self) -> bool:
        return Handle.DATA_OUTPUT in self.definition.outputs

    @property
    def consumes_video(self) -> bool:
        return Handle.VIDEO_INPUT in self.definition.inputs

    @property
    def consumes_audio(self) -> bool:
        return Handle.AUDIO_INPUT in self.definition.inputs

    @property
    def consumes_params(self) -> bool:
        return Handle.DATA_INPUT in self.definition.inputs

    @property
    def is_comparison(self) -> bool:
        return Handle.REFERENCE_INPUT in self.definition.inputs

    def default_data(self) -> dict[str, Any]:
        return dict(self.definition.defaults)


LEGACY_KIND_NAMES = {
    'inputVideo': 'videoSource',
    'inputAudio': 'audioSource',
    'trimVideo': 'videoTrim',
    'trimAudio': 'audioTrim',
    'convertVideo': 'videoConvert',
    'convertAudio': 'audioConvert',
    'viewVideo': 'viewer',
    'gridView': 'gridViewer',
    'infoVideo': 'videoInfo',
    'infoAudio': 'audioInfo',
    'vmafAnalysis': 'qualityCompare',
}


@dataclass
class NodeDefinition:
    kind: NodeKind
    title: str
    category: str
    role: NodeRole
    media: MediaKind
    inputs: tuple = ()
    outputs: tuple = ()
    defaults: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "category": self.category,
            "role": self.role.value,
            "media": self.media.value,
            "inputs": [h.value for h in self.inputs],
            "outputs": [h.value for h in self.outputs],
            "defaults": dict(self.defaults),
        }


_TRIM_DEFAULTS = {"startTime": 0, "endTime": 60, "duration": 60}

NODE_DEFINITIONS: dict[NodeKind, NodeDefinition] = {d.kind: d for d in [
    NodeDefinition(
        NodeKind.VIDEO_SOURCE, "Video Input", "Input",
        NodeRole.LEAF_PRODUCER, MediaKind.VIDEO,
        outputs=(Handle.VIDEO_OUTPUT,),
        defaults={"filePath": ""},
    ),
    NodeDefinition(
        NodeKind.AUDIO_SOURCE, "Audio Input", "Input",
        NodeRole.LEAF_PRODUCER, MediaKind.AUDIO,
        # video-output kept for workflows wired before audio ports existed
        outputs=(Handle.AUDIO_OUTPUT, Handle.VIDEO_OUTPUT),
        defaults={"filePath": ""},
    ),
    NodeDefinition(
        NodeKind.VIDEO_TRIM, "Video Trim", "Process",
        NodeRole.PASS_THROUGH, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT,),
        outputs=(Handle.VIDEO_OUTPUT, Handle.DATA_OUTPUT),
        defaults=_TRIM_DEFAULTS,
    ),
    NodeDefinition(
        NodeKind.AUDIO_TRIM, "Audio Trim", "Process",
        NodeRole.PASS_THROUGH, MediaKind.AUDIO,
        inputs=(Handle.AUDIO_INPUT,),
        outputs=(Handle.AUDIO_OUTPUT, Handle.DATA_OUTPUT),
        defaults=_TRIM_DEFAULTS,
    ),
    NodeDefinition(
        NodeKind.VIDEO_CONVERT, "Convert Video", "Process",
        NodeRole.TRANSFORM, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT, Handle.DATA_INPUT),
        outputs=(Handle.VIDEO_OUTPUT,),
        defaults={"format": "mp4", "quality": "medium", "outputPath": "",
                  "useGPU": False, "gpuType": "auto"},
    ),
    NodeDefinition(
        NodeKind.AUDIO_CONVERT, "Convert Audio", "Process",
        NodeRole.TRANSFORM, MediaKind.AUDIO,
        inputs=(Handle.AUDIO_INPUT, Handle.DATA_INPUT),
        outputs=(Handle.AUDIO_OUTPUT,),
        defaults={"format": "mp3", "quality": "medium", "outputPath": "",
                  "sampleRate": "original", "bitrate": "auto", "bitrateMode": "auto",
                  "customBitrate": "", "vbrQuality": "5", "channels": "original",
                  "codec": "mp3", "normalize": False, "volumeGain": "0"},
    ),
    NodeDefinition(
        NodeKind.VIEWER, "Video Preview", "Output",
        NodeRole.TERMINAL, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT,),
        defaults={"videoPath": None},
    ),
    NodeDefinition(
        NodeKind.GRID_VIEWER, "Grid Preview", "Output",
        NodeRole.TERMINAL, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT,),
        defaults={"videoPath": None, "gridSize": 3},
    ),
    NodeDefinition(
        NodeKind.SEQUENCE_EXTRACT, "Frame Sequence", "Output",
        NodeRole.TERMINAL, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT, Handle.DATA_INPUT),
        defaults={"format": "png", "compression": "medium", "size": "original",
                  "outputPath": "", "fps": "original", "quality": "high"},
    ),
    NodeDefinition(
        NodeKind.SPECTRUM_ANALYZER, "Spectrum Analyzer", "Analyze",
        NodeRole.TERMINAL, MediaKind.AUDIO,
        inputs=(Handle.AUDIO_INPUT, Handle.VIDEO_INPUT),
        defaults={"audioFile": "", "sensitivity": 80, "smoothing": 0.8,
                  "barCount": 64, "showFreqLabels": True, "gainBoost": 1.5},
    ),
    NodeDefinition(
        NodeKind.VIDEO_INFO, "Video Metadata", "Analyze",
        NodeRole.TERMINAL, MediaKind.VIDEO,
        inputs=(Handle.VIDEO_INPUT,),
        defaults={"metadata": None},
    ),
    NodeDefinition(
        NodeKind.AUDIO_INFO, "Audio Metadata", "Analyze",
        NodeRole.TERMINAL, MediaKind.AUDIO,
        inputs=(Handle.AUDIO_INPUT,),
        defaults={"metadata": None},
    ),
    NodeDefinition(
        NodeKind.QUALITY_COMPARE, "VMAF Quality", "Analyze",
        NodeRole.TERMINAL, MediaKind.VIDEO,
        inputs=(Handle.REFERENCE_INPUT, Handle.TEST_INPUT),
        defaults={"model": "default", "pooling": "mean", "outputFormat": "json",
                  "confidenceInterval": True},
    ),
]}

_undefined = set(NodeKind) - set(NODE_DEFINITIONS)
if _undefined:
    raise RuntimeError(f"Node kinds without a definition: {sorted(k.value for k in _undefined)}")

# Terminal kinds whose videoPath is rebound from execution outputs
DISPLAY_KINDS = frozenset({NodeKind.VIEWER, NodeKind.GRID_VIEWER, NodeKind.VIDEO_INFO})


def get_nodes_json() -> list[dict]:
    """Node catalog for editors."""
    return [d.to_dict() for d in NODE_DEFINITIONS.values()]
