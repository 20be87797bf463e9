class StreamMirrorError(Exception):
    """Clase base para todas las excepciones del proyecto."""

    pass


class FetchError(StreamMirrorError):
    """Fallo de red o estado HTTP no exitoso al descargar un recurso."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"GET {url}: {reason}")
        self.url = url
        self.reason = reason


class ReferenceResolutionError(StreamMirrorError):
    """Una referencia del manifiesto no se pudo resolver contra su base."""

    def __init__(self, reference: str, base: str):
        super().__init__(f"No se pudo resolver '{reference}' relativo a {base}")
        self.reference = reference
        self.base = base


class StorageError(StreamMirrorError):
    """Fallo al crear directorios o escribir archivos en disco."""

    def __init__(self, path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class UnsupportedManifestError(StreamMirrorError):
    """La URL inicial no termina en .m3u8 ni en .mpd."""

    def __init__(self, url: str, extension: str):
        super().__init__(f"Extensión de URL inicial no soportada: {extension!r} ({url})")
        self.url = url
        self.extension = extension
