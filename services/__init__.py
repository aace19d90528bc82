"""
Services

- video_generation: image-to-video client (submit, poll, download)
"""

from .video_generation import VideoGenerationClient, generate_video

__all__ = [
    "VideoGenerationClient",
    "generate_video",
]
