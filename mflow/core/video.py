"""
Local video metadata probe.

Used by the video inspector endpoint to show basic stream properties
of a selected file before the pipeline is executed.
"""

from dataclasses import dataclass
from pathlib import Path

import cv2


@dataclass
class VideoProperties:
    """Properties of a video file."""
    path: str
    width: int
    height: int
    fps: float
    frame_count: int

    @classmethod
    def from_capture(cls, path: str, cap: cv2.VideoCapture) -> "VideoProperties":
        """Create VideoProperties from an OpenCV VideoCapture."""
        return cls(
            path=path,
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(cap.get(cv2.CAP_PROP_FPS)),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )

    @property
    def duration(self) -> float:
        """Duration in seconds (0 when the frame rate is unknown)."""
        return self.frame_count / self.fps if self.fps > 0 else 0.0

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
            "duration": self.duration,
        }


def probe_video(path: str | Path) -> VideoProperties:
    """
    Read basic stream properties of a video file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If OpenCV cannot open the file
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise ValueError(f"Cannot open video: {path}")
    try:
        return VideoProperties.from_capture(str(path), cap)
    finally:
        cap.release()
