"""
Botanical name formatting and name-derived identifiers.

Scientific names follow the usual typographic convention: genus, epithets
and family are italic; ranks (``ssp.``, ``var.``, ``f.``), the hybrid
marker and cultivar names are not.
"""
import random
import re
import string
import unicodedata
from dataclasses import dataclass
from typing import Any, List, Optional

HYBRID_BEFORE_GENUS = "before_genus"
HYBRID_BETWEEN_GENUS_SPECIES = "between_genus_species"

_TAG_RE = re.compile(r"</?i>")
_FILENAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9-]")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class NamePart:
    text: str
    italic: bool = False

    def html(self) -> str:
        return f"<i>{self.text}</i>" if self.italic else self.text


def _field(plant: Any, name: str) -> Optional[str]:
    if isinstance(plant, dict):
        return plant.get(name)
    return getattr(plant, name, None)


def build_full_plant_name(plant: Any) -> List[NamePart]:
    """Return the display parts: scientific name, then common name and family when set."""
    if not plant:
        return []

    hybrid = _field(plant, "hybrid_marker") == "x"
    hybrid_position = _field(plant, "hybrid_marker_position")
    pieces: List[NamePart] = []

    if hybrid and hybrid_position == HYBRID_BEFORE_GENUS:
        pieces.append(NamePart("x"))
    if _field(plant, "genus"):
        pieces.append(NamePart(_field(plant, "genus"), italic=True))
    if hybrid and hybrid_position == HYBRID_BETWEEN_GENUS_SPECIES:
        pieces.append(NamePart("x"))
    if _field(plant, "specific_epithet"):
        pieces.append(NamePart(_field(plant, "specific_epithet"), italic=True))

    rank = _field(plant, "infraspecies_rank")
    if rank:
        pieces.append(NamePart("ssp." if rank == "subsp." else rank))
        if _field(plant, "infraspecies_epithet"):
            pieces.append(NamePart(_field(plant, "infraspecies_epithet"), italic=True))

    if _field(plant, "variety"):
        pieces.append(NamePart("var."))
        pieces.append(NamePart(_field(plant, "variety"), italic=True))

    if _field(plant, "forma"):
        pieces.append(NamePart("f."))
        pieces.append(NamePart(_field(plant, "forma"), italic=True))

    if _field(plant, "cultivar"):
        pieces.append(NamePart(f"'{_field(plant, 'cultivar')}'"))

    if pieces:
        parts = [NamePart(" ".join(piece.html() for piece in pieces))]
    elif _field(plant, "scientific_name"):
        # records entered without the taxonomy fields
        parts = [NamePart(_field(plant, "scientific_name"), italic=True)]
    else:
        parts = []
    if _field(plant, "common_name"):
        parts.append(NamePart(_field(plant, "common_name")))
    if _field(plant, "family"):
        parts.append(NamePart(_field(plant, "family"), italic=True))
    return parts


def render_plant_name(plant: Any) -> str:
    """Render the full name as HTML, parts separated by commas."""
    return ", ".join(part.html() for part in build_full_plant_name(plant))


def plant_display_name(plant: Any) -> str:
    """Plain-text version of the rendered name."""
    return _TAG_RE.sub("", render_plant_name(plant))


def build_image_filename(plant: Any) -> str:
    """Storage-safe base filename from the name fields, e.g. ``acer-palmatum-var-dissectum``."""
    fields = ["genus", "specific_epithet", "infraspecies_rank", "variety", "cultivar"]
    cleaned = [_FILENAME_UNSAFE_RE.sub("", _field(plant, name) or "") for name in fields]
    joined = "-".join(value for value in cleaned if value)
    return re.sub(r"-+", "-", joined).lower()


def generate_suffix(length: int = 4) -> str:
    return "".join(random.choice(_SUFFIX_ALPHABET) for _ in range(length))


def slugify(value: Optional[str]) -> str:
    """Lowercase ASCII slug: diacritics removed, runs of other characters become one hyphen."""
    if not value:
        return ""
    normalized = unicodedata.normalize("NFD", value)
    ascii_text = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
    ascii_text = ascii_text.encode("ascii", "ignore").decode("ascii").lower()
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")
