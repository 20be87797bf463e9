import logging
from pathlib import Path
from typing import Dict, List
from urllib.parse import urlparse

from streammirror.utils import safe_query_suffix, url_path_components

logger = logging.getLogger(__name__)


class PathMapper:
    """
    Traduce URLs remotas a rutas locales dentro del directorio de salida.

    Toma como origen de coordenadas el path del manifiesto maestro: solo se
    conserva la parte del path de cada recurso que no comparte con el
    directorio del maestro. Ej:

        maestro = ["x", "y", "z", "manifest.m3u8"]
        hijo    = ["x", "y", "z", "sub", "foo.m3u8"]
        ->        output_dir / "sub/foo.m3u8"

    Una vez calculada, la ruta de una URL no cambia durante la ejecución.
    """

    def __init__(self, output_dir: Path, master_components: List[str]):
        self.output_dir = Path(output_dir)
        self.master_components = tuple(master_components)
        self._cache: Dict[str, Path] = {}

    @classmethod
    def for_master(cls, output_dir: Path, master_url: str) -> "PathMapper":
        return cls(output_dir, url_path_components(master_url))

    def path_for_url(self, url: str, is_manifest: bool) -> Path:
        cached = self._cache.get(url)
        if cached is not None:
            return cached

        local_path = self.output_dir / self._relative_parts(url)

        if is_manifest and local_path.name and not local_path.suffix:
            local_path = local_path.with_name(f"{local_path.name}.m3u8")

        query = urlparse(url).query
        if query and local_path.name:
            local_path = local_path.with_name(
                self._name_with_query(local_path.name, query)
            )

        logger.debug(f"Ruta local asignada: {url} -> {local_path}")
        self._cache[url] = local_path
        return local_path

    def _relative_parts(self, url: str) -> str:
        parts = url_path_components(url)
        base = self.master_components

        idx = 0
        while (
            idx < len(base) - 1
            and idx < len(parts) - 1
            and base[idx] == parts[idx]
        ):
            idx += 1
        # Sin segmentos vacíos, "." ni "..": la ruta nunca sale de output_dir
        kept = [part for part in parts[idx:] if part not in ("", ".", "..")]
        return "/".join(kept)

    @staticmethod
    def _name_with_query(filename: str, query: str) -> str:
        safe = safe_query_suffix(query)
        stem, dot, ext = filename.rpartition(".")
        if not dot:
            return f"{filename}__q_{safe}"
        return f"{stem}__q_{safe}.{ext}"

    def __len__(self) -> int:
        return len(self._cache)
