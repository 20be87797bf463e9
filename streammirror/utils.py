import os
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union
from urllib.parse import urljoin, urlparse, urlsplit, urlunsplit

from streammirror.exceptions import ReferenceResolutionError

URI_ATTR = 'URI="'
UNSAFE_QUERY_CHARS = re.compile(r"[^A-Za-z0-9]")
MAX_QUERY_SUFFIX = 32
DEFAULT_PORTS = {"http": 80, "https": 443}


def url_path_components(url: str) -> List[str]:
    """Segmentos del path de la URL, sin la barra inicial."""
    return urlparse(url).path.lstrip("/").split("/")


def url_extension(url: str) -> str:
    """Extensión (en minúsculas, sin punto) del último segmento del path."""
    name = urlparse(url).path.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def remove_dot_segments(path: str) -> str:
    """
    Elimina los segmentos "." y ".." de un path absoluto de URL.
    Los segmentos vacíos ("a//b") se conservan: son otra URL.
    """
    segments = path.split("/")
    if path.startswith("/"):
        segments = segments[1:]

    output: List[str] = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            if output:
                output.pop()
            continue
        output.append(segment)

    # "a/b/.." y "a/b/." apuntan a un directorio
    if segments and segments[-1] in (".", ".."):
        output.append("")
    return "/" + "/".join(output)


def canonical_url(url: str) -> str:
    """
    Forma canónica de una URL http(s): esquema y host en minúsculas, sin el
    puerto por defecto, sin segmentos "."/".." y sin fragmento.
    Dos referencias al mismo recurso producen la misma cadena.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()

    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.port is not None and parts.port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{parts.port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit((scheme, netloc, remove_dot_segments(parts.path), parts.query, ""))


def resolve_reference(base: str, reference: str) -> str:
    """
    Resuelve `reference` relativo a `base`, valida que el resultado sea
    una URL http(s) utilizable y la devuelve en forma canónica.
    """
    try:
        resolved = urljoin(base, reference)
        parts = urlsplit(resolved)
        if parts.scheme.lower() not in DEFAULT_PORTS or not parts.hostname:
            raise ReferenceResolutionError(reference, base)
        # canonical_url accede al puerto: ValueError si el netloc es inválido
        return canonical_url(resolved)
    except ValueError as e:
        raise ReferenceResolutionError(reference, base) from e


def find_uri_attr(line: str) -> Optional[Tuple[int, int]]:
    """
    Posiciones (inicio, fin) del valor de un atributo URI="..." en una línea
    de tag HLS. None si no hay atributo o si la comilla de cierre falta.
    """
    start = line.find(URI_ATTR)
    if start < 0:
        return None
    start += len(URI_ATTR)
    end = line.find('"', start)
    if end < 0:
        return None
    return start, end


def to_posix_relative(target: Union[str, Path], base: Union[str, Path]) -> str:
    """Ruta relativa de `target` desde el directorio `base`, siempre con '/'."""
    return Path(os.path.relpath(target, base)).as_posix()


def safe_query_suffix(query: str) -> str:
    safe = UNSAFE_QUERY_CHARS.sub("_", query)
    return safe[:MAX_QUERY_SUFFIX]
