"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int


@dataclass(frozen=True)
class AudioSegment:
    """One closed recording segment, WAV encoded and ready for upload."""
    data: bytes
    frame_count: int
    sequence_number: int
    duration_seconds: float

    @property
    def is_empty(self) -> bool:
        return self.frame_count == 0
