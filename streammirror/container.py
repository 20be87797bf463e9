from streammirror.config import MirrorConfig
from streammirror.orchestrator import StreamMirror
from streammirror.services.http import HttpFetcher
from streammirror.services.storage import LocalStorage


class ServiceContainer:
    """
    Clase encargada de ensamblar todas las dependencias del sistema.
    Centraliza la creación de objetos para limpiar el punto de entrada.
    """

    def __init__(self, config: MirrorConfig):
        self.config = config

        self.fetcher = HttpFetcher(
            user_agent=config.user_agent,
            timeout=config.timeout,
            headers=config.headers,  # type: ignore
            verify=config.verify_tls,
            retries=config.retries,
        )
        self.storage = LocalStorage()

        self.mirror = StreamMirror(
            output_dir=config.output_dir,
            fetcher=self.fetcher,
            storage=self.storage,
        )

    def close(self) -> None:
        self.fetcher.close()
