"""Video extension: keyframe commitments, video proofs and stream processing."""
from .extension import (
    DEFAULT_ASSUMED_FPS,
    DEFAULT_KEYFRAME_INTERVAL,
    Keyframe,
    VideoProofExtension,
    VideoStreamProcessor,
    compute_video_root,
    frame_leaf,
)
from .verifier import VideoProofVerifier

__all__ = [
    "DEFAULT_ASSUMED_FPS",
    "DEFAULT_KEYFRAME_INTERVAL",
    "Keyframe",
    "VideoProofExtension",
    "VideoProofVerifier",
    "VideoStreamProcessor",
    "compute_video_root",
    "frame_leaf",
]
