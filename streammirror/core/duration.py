import re
from typing import Optional

_COMPONENT = re.compile(r"([0-9.]+)(.)", re.DOTALL)
_UNIT_SECONDS = {"H": 3600.0, "M": 60.0, "S": 1.0}


def parse_iso8601_duration(value: Optional[str]) -> Optional[float]:
    """
    Convierte una duración ISO-8601 restringida (PT[nH][nM][nS]) a segundos.
    Ej: "PT3M30.840S" -> 210.84

    Devuelve None si no empieza por "PT", si aparece una unidad desconocida
    o si un número no es válido. Un número final sin unidad se ignora.
    """
    if value is None or not value.startswith("PT"):
        return None

    rest = value[2:]
    components = {unit: 0.0 for unit in _UNIT_SECONDS}
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            break

        number, unit = match.groups()
        if unit not in components:
            return None
        try:
            components[unit] = float(number)
        except ValueError:
            return None
        pos = match.end()

    return sum(components[unit] * factor for unit, factor in _UNIT_SECONDS.items())
