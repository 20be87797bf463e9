import logging
from pathlib import Path

from streammirror.exceptions import StorageError
from streammirror.interfaces import BaseStorage

logger = logging.getLogger(__name__)


class LocalStorage(BaseStorage):
    """Escribe el espejo en el sistema de archivos local."""

    def create_dir_all(self, path: Path) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(path, f"no se pudo crear el directorio: {e}") from e

    def write_file(self, path: Path, data: bytes) -> None:
        path = Path(path)
        self.create_dir_all(path.parent)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(path, f"no se pudo escribir el archivo: {e}") from e
        logger.debug(f"Escrito {path} ({len(data)} bytes)")
