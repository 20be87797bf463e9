import logging
from pathlib import Path
from typing import Iterator, List
from urllib.parse import urlparse

from streammirror.mirror.context import MirrorContext
from streammirror.models import ResourceKind
from streammirror.utils import find_uri_attr, resolve_reference, to_posix_relative

logger = logging.getLogger(__name__)

HLS_SIGNATURE = "#EXTM3U"


def iter_lines(text: str) -> Iterator[str]:
    """Líneas separadas por '\\n', sin el '\\r' final ni la línea vacía tras el último salto."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith("\r") else line


def classify_reference(url: str) -> ResourceKind:
    """Un hijo es sub-manifiesto si su path termina en .m3u8 (sin distinguir mayúsculas)."""
    if urlparse(url).path.lower().endswith(".m3u8"):
        return ResourceKind.MANIFEST
    return ResourceKind.BINARY


class HlsRewriter:
    """
    Espeja un manifiesto HLS (.m3u8) y todo lo que referencia, reescribiendo
    cada URI para que apunte a la copia local relativa.

    Cada sub-manifiesto se espeja por completo (en profundidad) antes de
    escribir la línea del padre que lo referencia.
    """

    def __init__(self, context: MirrorContext):
        self.context = context

    def mirror(self, url: str) -> None:
        ctx = self.context
        if not ctx.visited.mark_if_new(url):
            return

        local_path = ctx.mapper.path_for_url(url, True)
        ctx.storage.create_dir_all(local_path.parent)
        logger.info(f"[M3U8] {url} -> {local_path}")

        data = ctx.fetcher.fetch(url)
        text = data.decode("utf-8", errors="replace")

        if not text.lstrip().startswith(HLS_SIGNATURE):
            logger.warning(f"  -> {url} no es un manifiesto HLS, se guarda como binario")
            ctx.write_fallback(url, data)
            return

        ctx.write_original(local_path, data, "manifest.m3u8.orig")

        local_dir = local_path.parent
        output_lines: List[str] = []
        for line in iter_lines(text):
            output_lines.append(self._rewrite_line(url, line, local_dir))

        # Este es el manifiesto que se sirve
        ctx.write_manifest(local_path, ("\n".join(output_lines) + "\n").encode("utf-8"))

    def _rewrite_line(self, url: str, line: str, local_dir: Path) -> str:
        trimmed = line.strip()

        if trimmed.startswith("#"):
            # Tags con atributo URI (EXT-X-KEY, EXT-X-MEDIA, EXT-X-MAP, ...)
            span = find_uri_attr(line)
            if span is None:
                return line
            start, end = span
            rel = self._mirror_reference(url, line[start:end], local_dir)
            return line[:start] + rel + line[end:]

        if not trimmed:
            return line

        # En HLS, una línea que no es comentario ni está vacía es una URI
        return self._mirror_reference(url, trimmed, local_dir)

    def _mirror_reference(self, url: str, reference: str, local_dir: Path) -> str:
        child_url = resolve_reference(url, reference.strip())
        is_manifest = classify_reference(child_url) is ResourceKind.MANIFEST

        if is_manifest:
            self.mirror(child_url)
        else:
            self.context.mirror_binary(child_url)

        target_path = self.context.mapper.path_for_url(child_url, is_manifest)
        return to_posix_relative(target_path, local_dir)
