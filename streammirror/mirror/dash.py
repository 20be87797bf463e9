import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from streammirror.core.duration import parse_iso8601_duration
from streammirror.mirror.context import MirrorContext
from streammirror.models import SegmentTemplate
from streammirror.utils import resolve_reference

logger = logging.getLogger(__name__)

MPD_ROOT = "MPD"
REPRESENTATION_ID = "$RepresentationID$"
NUMBER = "$Number$"


def local_name(tag) -> str:
    """Nombre del elemento sin el namespace ({urn:mpeg:dash:schema:mpd:2011}MPD -> MPD)."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def child_elements(node: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in node if local_name(child.tag) == name]


def first_child(node: ET.Element, name: str) -> Optional[ET.Element]:
    for child in node:
        if local_name(child.tag) == name:
            return child
    return None


def first_child_text(node: ET.Element, name: str) -> Optional[str]:
    child = first_child(node, name)
    return child.text if child is not None else None


def _int_attr(element: ET.Element, name: str) -> Optional[int]:
    value = element.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_segment_template(element: ET.Element) -> SegmentTemplate:
    timescale = _int_attr(element, "timescale")
    start_number = _int_attr(element, "startNumber")
    return SegmentTemplate(
        initialization=element.get("initialization"),
        media=element.get("media"),
        timescale=timescale if timescale is not None else 1,
        duration=_int_attr(element, "duration"),
        start_number=start_number if start_number is not None else 1,
        end_number=_int_attr(element, "endNumber"),
    )


@dataclass
class TemplateExpansion:
    initialization: Optional[str] = None
    # Generador: las URLs se crean a medida que se espejan
    media: Iterable[str] = field(default_factory=tuple)
    # True si hay plantilla media pero no se pudo saber cuántos segmentos hay
    media_skipped: bool = False


def expand_segment_template(
    template: SegmentTemplate,
    representation_id: str,
    base_url: str,
    total_seconds: Optional[float],
) -> TemplateExpansion:
    """
    Convierte un SegmentTemplate en URLs absolutas de inicialización y media.
    La sustitución de $RepresentationID$ y $Number$ es literal (sin formato de ancho).
    """
    expansion = TemplateExpansion()

    if template.initialization is not None:
        path = template.initialization.replace(REPRESENTATION_ID, representation_id)
        expansion.initialization = resolve_reference(base_url, path.strip())

    if not template.media:
        return expansion

    numbers = template.segment_numbers(total_seconds)
    if numbers is None:
        expansion.media_skipped = True
        return expansion

    media = template.media.replace(REPRESENTATION_ID, representation_id)
    expansion.media = _media_urls(media, numbers, base_url)
    return expansion


def _media_urls(media: str, numbers: range, base_url: str) -> Iterator[str]:
    for number in numbers:
        path = media.replace(NUMBER, str(number))
        yield resolve_reference(base_url, path.strip())


class DashWalker:
    """
    Espeja un MPD de DASH. El MPD se guarda sin cambios (los reproductores
    resuelven las plantillas contra sus BaseURL relativas), pero se descargan
    todos los segmentos y archivos laterales que declara.

    Herencia: BaseURL de Representation > AdaptationSet > Period > MPD > URL
    del manifiesto; SegmentTemplate de Representation > AdaptationSet > Period.
    """

    def __init__(self, context: MirrorContext):
        self.context = context

    def mirror(self, url: str) -> None:
        ctx = self.context
        if not ctx.visited.mark_if_new(url):
            return

        local_path = ctx.mapper.path_for_url(url, True)
        ctx.storage.create_dir_all(local_path.parent)
        logger.info(f"[MPD ] {url} -> {local_path}")

        data = ctx.fetcher.fetch(url)
        ctx.write_original(local_path, data, "manifest.mpd.orig")
        ctx.write_manifest(local_path, data)

        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            logger.warning(f"  -> {url} no es XML válido ({e}), se deja como binario")
            ctx.record_fallback(url)
            return

        if local_name(root.tag) != MPD_ROOT:
            logger.warning(f"  -> {url} no tiene raíz MPD, se deja como binario")
            ctx.record_fallback(url)
            return

        total_seconds = self._presentation_duration(root)
        mpd_base = self._narrow_base(url, root)

        for period in child_elements(root, "Period"):
            period_base = self._narrow_base(mpd_base, period)
            period_template = first_child(period, "SegmentTemplate")

            for aset in child_elements(period, "AdaptationSet"):
                aset_base = self._narrow_base(period_base, aset)
                aset_template = first_child(aset, "SegmentTemplate")
                if aset_template is None:
                    aset_template = period_template

                for rep in child_elements(aset, "Representation"):
                    self._mirror_representation(
                        rep, aset_base, aset_template, total_seconds
                    )

    def _presentation_duration(self, root: ET.Element) -> Optional[float]:
        value = root.get("mediaPresentationDuration")
        if value is None:
            return None
        seconds = parse_iso8601_duration(value)
        if seconds is None:
            logger.warning(f"mediaPresentationDuration no interpretable: {value!r}")
        return seconds

    def _narrow_base(self, base: str, element: ET.Element) -> str:
        text = first_child_text(element, "BaseURL")
        if text is None:
            return base
        return resolve_reference(base, text.strip())

    def _mirror_representation(
        self,
        rep: ET.Element,
        aset_base: str,
        inherited_template: Optional[ET.Element],
        total_seconds: Optional[float],
    ) -> None:
        rep_id = rep.get("id")
        if rep_id is None:
            logger.debug("Representation sin id, se omite")
            return

        text = first_child_text(rep, "BaseURL")
        if text is not None:
            rep_base = resolve_reference(aset_base, text.strip())
            # Una BaseURL que no termina en "/" apunta a un archivo (ej: subtítulos .webvtt)
            rep_base_is_file = not text.rstrip().endswith("/")
        else:
            rep_base = aset_base
            rep_base_is_file = False

        template_element = first_child(rep, "SegmentTemplate")
        if template_element is None:
            template_element = inherited_template

        if template_element is not None:
            self._mirror_template(
                parse_segment_template(template_element), rep_id, rep_base, total_seconds
            )

        if rep_base_is_file:
            self.context.mirror_binary(rep_base)

    def _mirror_template(
        self,
        template: SegmentTemplate,
        rep_id: str,
        base_url: str,
        total_seconds: Optional[float],
    ) -> None:
        expansion = expand_segment_template(template, rep_id, base_url, total_seconds)

        if expansion.initialization is not None:
            self.context.mirror_binary(expansion.initialization)

        if expansion.media_skipped:
            logger.warning(
                f"  -> Saltando segmentos de {rep_id} "
                "(sin endNumber y sin duración de segmento/MPD)"
            )
            self.context.summary.skipped_representations.append(rep_id)
            return

        for segment_url in expansion.media:
            self.context.mirror_binary(segment_url)
