"""
Execution engine response types.
"""

from dataclasses import dataclass, field, asdict

from mflow.core.errors import EngineError


@dataclass
class VideoArtifact:
    """A file produced by the engine for one node."""
    path: str
    format: str = ""
    width: int = 0
    height: int = 0
    duration: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "VideoArtifact":
        return cls(
            path=str(raw['path']),
            format=raw.get('format') or "",
            width=int(raw.get('width') or 0),
            height=int(raw.get('height') or 0),
            duration=float(raw.get('duration') or 0.0),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AudioArtifact:
    path: str
    format: str = ""
    duration: float = 0.0
    sample_rate: int | None = None
    channels: int | None = None
    bitrate: int | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "AudioArtifact":
        return cls(
            path=str(raw['path']),
            format=raw.get('format') or "",
            duration=float(raw.get('duration') or 0.0),
            sample_rate=raw.get('sampleRate'),
            channels=raw.get('channels'),
            bitrate=raw.get('bitrate'),
        )

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'format': self.format,
            'duration': self.duration,
            'sampleRate': self.sample_rate,
            'channels': self.channels,
            'bitrate': self.bitrate,
        }


@dataclass
class QualityScore:
    """VMAF comparison result for one comparison node."""
    mean: float
    min: float
    max: float
    harmonic_mean: float
    frame_count: int
    model: str = ""
    reference_path: str = ""
    distorted_path: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "QualityScore":
        return cls(
            mean=float(raw['mean']),
            min=float(raw['min']),
            max=float(raw['max']),
            harmonic_mean=float(raw['harmonic_mean']),
            frame_count=int(raw['frame_count']),
            model=raw.get('model') or "",
            reference_path=raw.get('reference_path') or "",
            distorted_path=raw.get('distorted_path') or "",
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ValidationResult:
    is_valid: bool
    message: str | None = None

    def to_dict(self) -> dict:
        return {'isValid': self.is_valid, 'message': self.message}


@dataclass
class ExecutionResult:
    """
    Outcome of one pipeline execution.

    Failures carry only a message; no artifact maps are ever populated
    for an unsuccessful run.
    """
    success: bool
    message: str = ""
    outputs: dict[str, VideoArtifact] = field(default_factory=dict)
    vmaf_results: dict[str, QualityScore] = field(default_factory=dict)
    audio_outputs: dict[str, AudioArtifact] = field(default_factory=dict)

    @classmethod
    def failure(cls, message: str) -> "ExecutionResult":
        return cls(success=False, message=message)

    @classmethod
    def from_response(cls, raw) -> "ExecutionResult":
        """
        Parse an engine response.

        Raises:
            EngineError: If the response does not have the expected shape
        """
        if not isinstance(raw, dict) or 'success' not in raw:
            raise EngineError(f"Malformed engine response: {raw!r}")
        try:
            return cls(
                success=bool(raw['success']),
                message=str(raw.get('message') or ""),
                outputs={k: VideoArtifact.from_dict(v)
                         for k, v in (raw.get('outputs') or {}).items()},
                vmaf_results={k: QualityScore.from_dict(v)
                              for k, v in (raw.get('vmaf_results') or {}).items()},
                audio_outputs={k: AudioArtifact.from_dict(v)
                               for k, v in (raw.get('audio_outputs') or {}).items()},
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise EngineError(f"Malformed engine response: {e}") from e

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'message': self.message,
            'outputs': {k: v.to_dict() for k, v in self.outputs.items()},
            'vmaf_results': {k: v.to_dict() for k, v in self.vmaf_results.items()},
            'audio_outputs': {k: v.to_dict() for k, v in self.audio_outputs.items()},
        }
