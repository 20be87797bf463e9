from abc import ABC, abstractmethod
from pathlib import Path


class BaseFetcher(ABC):
    """
    Contrato que deben cumplir los clientes que descargan recursos remotos.
    """

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """
        Descarga el recurso y devuelve su contenido.
        Un estado no exitoso debe lanzar FetchError.
        """
        pass


class BaseStorage(ABC):
    """
    Define las operaciones de disco que necesita el espejo.
    """

    @abstractmethod
    def create_dir_all(self, path: Path) -> None:
        """Crea el directorio y todos sus padres si no existen."""
        pass

    @abstractmethod
    def write_file(self, path: Path, data: bytes) -> None:
        """Escribe (o sobrescribe) el archivo con los bytes dados."""
        pass
