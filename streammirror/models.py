import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class Dialect(str, Enum):
    HLS = "hls"
    DASH = "dash"


class ResourceKind(str, Enum):
    MANIFEST = "manifest"
    BINARY = "binary"


class SegmentTemplate(BaseModel):
    """Atributos de un <SegmentTemplate> de DASH, ya convertidos."""

    initialization: Optional[str] = None
    media: Optional[str] = None
    timescale: int = 1
    duration: Optional[int] = None
    start_number: int = 1
    end_number: Optional[int] = None

    def resolve_end_number(self, total_seconds: Optional[float]) -> Optional[int]:
        """
        Devuelve el último número de segmento (inclusive).
        Usa endNumber si existe; si no, lo deriva de la duración del segmento
        y la duración total de la presentación. None si no se puede saber.
        """
        if self.end_number is not None:
            return self.end_number
        if self.duration is None or total_seconds is None:
            return None
        if self.duration <= 0 or self.timescale <= 0:
            return None

        segment_seconds = self.duration / self.timescale
        count = math.ceil(total_seconds / segment_seconds)
        return self.start_number + count - 1

    def segment_numbers(self, total_seconds: Optional[float]) -> Optional[range]:
        end_number = self.resolve_end_number(total_seconds)
        if end_number is None:
            return None
        return range(self.start_number, end_number + 1)


class MirrorSummary(BaseModel):
    dialect: Dialect
    manifests: int = 0
    binaries: int = 0
    bytes_written: int = 0
    fallbacks: List[str] = Field(default_factory=list)
    skipped_representations: List[str] = Field(default_factory=list)

    @computed_field
    def files(self) -> int:
        """Total de recursos espejados (sin contar las copias .orig)."""
        return self.manifests + self.binaries
