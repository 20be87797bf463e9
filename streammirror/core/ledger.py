from threading import Lock
from typing import Set


class VisitedSet:
    """
    Registro de URLs ya programadas en esta ejecución.

    `mark_if_new` es la única compuerta contra el reprocesado: se marca antes
    de descargar, nunca después.
    """

    def __init__(self):
        self._seen: Set[str] = set()
        self._lock = Lock()

    def mark_if_new(self, url: str) -> bool:
        with self._lock:
            if url in self._seen:
                return False
            self._seen.add(url)
            return True

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
