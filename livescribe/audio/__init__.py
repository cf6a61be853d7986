"""Audio capture and segmentation module."""

from .capture import AudioCapture, microphone_available
from .chunker import AudioChunker, encode_wav

__all__ = [
    'AudioCapture',
    'AudioChunker',
    'encode_wav',
    'microphone_available',
]
