import logging
from pathlib import Path
from typing import Optional

from streammirror.core.ledger import VisitedSet
from streammirror.core.paths import PathMapper
from streammirror.interfaces import BaseFetcher, BaseStorage
from streammirror.models import MirrorSummary

logger = logging.getLogger(__name__)


class MirrorContext:
    """
    Estado de una ejecución del espejo: mapeo de rutas, URLs visitadas,
    colaboradores de red/disco y el resumen de lo escrito.
    Se crea vacío al inicio de cada ejecución y no se persiste.
    """

    def __init__(
        self,
        mapper: PathMapper,
        fetcher: BaseFetcher,
        storage: BaseStorage,
        summary: MirrorSummary,
        visited: Optional[VisitedSet] = None,
    ):
        self.mapper = mapper
        self.fetcher = fetcher
        self.storage = storage
        self.summary = summary
        self.visited = visited if visited is not None else VisitedSet()

    def mirror_binary(self, url: str) -> Path:
        """Descarga el recurso tal cual, una sola vez por ejecución."""
        local_path = self.mapper.path_for_url(url, False)
        if not self.visited.mark_if_new(url):
            return local_path

        self.storage.create_dir_all(local_path.parent)
        logger.info(f"[BIN ] {url} -> {local_path}")
        data = self.fetcher.fetch(url)
        self._write(local_path, data)
        self.summary.binaries += 1
        return local_path

    def write_fallback(self, url: str, data: bytes) -> Path:
        """
        Guarda como binario un recurso que se pidió como manifiesto pero no
        lo es. La URL ya está marcada como visitada, así que se reutilizan
        los bytes descargados en lugar de volver a pedirla.
        """
        local_path = self.mapper.path_for_url(url, False)
        self._write(local_path, data)
        self.record_fallback(url)
        self.summary.binaries += 1
        return local_path

    def record_fallback(self, url: str) -> None:
        self.summary.fallbacks.append(url)

    def write_original(self, manifest_path: Path, data: bytes, default_name: str) -> Path:
        """Guarda el manifiesto sin modificar junto al reescrito (<nombre>.orig)."""
        if manifest_path.name:
            orig_path = manifest_path.with_name(f"{manifest_path.name}.orig")
        else:
            orig_path = manifest_path / default_name
        self._write(orig_path, data)
        return orig_path

    def write_manifest(self, manifest_path: Path, data: bytes) -> None:
        self._write(manifest_path, data)
        self.summary.manifests += 1

    def _write(self, path: Path, data: bytes) -> None:
        self.storage.write_file(path, data)
        self.summary.bytes_written += len(data)
