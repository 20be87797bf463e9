import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from streammirror.config import MirrorConfig, get_config
from streammirror.core.paths import PathMapper
from streammirror.exceptions import StreamMirrorError, UnsupportedManifestError
from streammirror.interfaces import BaseFetcher, BaseStorage
from streammirror.logging_config import setup_logging
from streammirror.mirror.context import MirrorContext
from streammirror.mirror.dash import DashWalker
from streammirror.mirror.hls import HlsRewriter
from streammirror.models import Dialect, MirrorSummary
from streammirror.services.storage import LocalStorage
from streammirror.utils import resolve_reference, url_extension

logger = logging.getLogger("Orchestrator")

EXTENSION_DIALECTS = {
    "m3u8": Dialect.HLS,
    "mpd": Dialect.DASH,
}


def detect_dialect(url: str) -> Dialect:
    """Elige HLS o DASH según la extensión de la URL inicial."""
    extension = url_extension(url)
    dialect = EXTENSION_DIALECTS.get(extension)
    if dialect is None:
        raise UnsupportedManifestError(url, extension)
    return dialect


class StreamMirror:
    """Punto de entrada de una ejecución: elige el dialecto y lanza el recorrido."""

    def __init__(
        self,
        output_dir: Path,
        fetcher: BaseFetcher,
        storage: Optional[BaseStorage] = None,
    ):
        self.output_dir = Path(output_dir)
        self.fetcher = fetcher
        self.storage = storage or LocalStorage()

    def run(self, start_url: str) -> MirrorSummary:
        dialect = detect_dialect(start_url)
        start_url = resolve_reference(start_url, start_url)

        self.storage.create_dir_all(self.output_dir)

        context = MirrorContext(
            mapper=PathMapper.for_master(self.output_dir, start_url),
            fetcher=self.fetcher,
            storage=self.storage,
            summary=MirrorSummary(dialect=dialect),
        )

        logger.info(f"Espejando {dialect.value.upper()}: {start_url} -> {self.output_dir}")
        if dialect is Dialect.HLS:
            HlsRewriter(context).mirror(start_url)
        else:
            DashWalker(context).mirror(start_url)

        summary = context.summary
        logger.info(
            f"Manifiestos: {summary.manifests} | Binarios: {summary.binaries} | "
            f"Bytes: {summary.bytes_written}"
        )
        if summary.skipped_representations:
            logger.warning(
                "Representaciones sin segmentos enumerados: "
                + ", ".join(summary.skipped_representations)
            )
        return summary


def parse_header_args(values: Optional[List[str]]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for value in values or []:
        if ":" not in value:
            logger.warning(f"Cabecera inválida, se ignora: {value}")
            continue
        key, val = value.split(":", 1)
        headers[key.strip()] = val.strip()
    return headers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Espeja recursivamente un stream HLS (.m3u8) o DASH (.mpd) para servirlo localmente"
    )
    parser.add_argument("-s", "--start-url", required=True, help="URL del manifiesto inicial")
    parser.add_argument("-o", "--output-dir", type=Path, help="Directorio de salida")
    parser.add_argument("--user-agent")
    parser.add_argument("--timeout", type=float)
    parser.add_argument(
        "--header", action="append", help='Cabecera extra "Clave: Valor" (repetible)'
    )
    parser.add_argument("--env-file", help="Archivo .env con la configuración")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log DEBUG en consola")
    return parser


def apply_overrides(config: MirrorConfig, args: argparse.Namespace) -> MirrorConfig:
    update = {}
    if args.output_dir is not None:
        update["output_dir"] = args.output_dir
    if args.user_agent:
        update["user_agent"] = args.user_agent
    if args.timeout is not None:
        update["timeout"] = args.timeout
    if args.header:
        headers = dict(config.headers)  # type: ignore
        headers.update(parse_header_args(args.header))
        update["headers"] = headers
    return config.model_copy(update=update) if update else config


def main(argv: Optional[List[str]] = None) -> int:
    # Import local: container importa este módulo
    from streammirror.container import ServiceContainer

    args = build_parser().parse_args(argv)
    config = apply_overrides(get_config(args.env_file), args)
    setup_logging(config.log_path, verbose=args.verbose)

    container = ServiceContainer(config)
    try:
        container.mirror.run(args.start_url)
    except UnsupportedManifestError as e:
        logger.error(str(e))
        return 2
    except StreamMirrorError as e:
        logger.error(f"Error fatal: {e}")
        return 1
    finally:
        container.close()

    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
