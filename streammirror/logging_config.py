import logging
import os
import sys
from pathlib import Path
from typing import List, TextIO, Union

SUPERVISOR_VARS = (
    "SUPERVISOR_PROCESS_NAME",
    "SUPERVISOR_ENABLED",
    "SUPERVISOR_GROUP_NAME",
)

# Librerías de terceros que solo generan ruido en consola
NOISY_LIBRARIES = ("urllib3", "requests", "charset_normalizer")


def logger_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%d-%m-%Y %I:%M:%S %p",
    )


def handler_stream(
    formatter: logging.Formatter, level: int, stream: TextIO = sys.stderr
) -> logging.StreamHandler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def handler_file(
    path: Union[str, Path], formatter: logging.Formatter
) -> logging.FileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    return file_handler


def running_under_supervisord() -> bool:
    return any(key in os.environ for key in SUPERVISOR_VARS)


def setup_logging(path: Union[str, Path], verbose: bool = False) -> None:
    """
    Consola (INFO, o DEBUG con `verbose`) + archivo en `path` (DEBUG).
    Bajo supervisord no se escribe archivo: stdout recibe todo y stderr
    solo avisos y errores.
    """
    formatter = logger_formatter()
    console_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler]
    if running_under_supervisord():
        handlers = [
            handler_stream(formatter, console_level, sys.stdout),
            handler_stream(formatter, logging.WARNING, sys.stderr),
        ]
    else:
        handlers = [
            handler_stream(formatter, console_level),
            handler_file(path, formatter),
        ]

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for lib_name in NOISY_LIBRARIES:
        logging.getLogger(lib_name).setLevel(logging.CRITICAL)
