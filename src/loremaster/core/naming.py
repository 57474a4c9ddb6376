"""Naming helpers: output folder names and suggested world names.

Output folders
--------------
:func:`name_folder` maps a species/civilization pair to a filesystem-safe
folder name.  It is a pure function, so repeated runs for the same pair reuse
(and overwrite into) the same folder::

    >>> name_folder("Vreshari", "Emberkin")
    'vreshari_emberkin'
    >>> name_folder("!!!", "###")
    'unnamed_unnamed'

Distinct pairs usually map to distinct folders, but names that differ only in
punctuation or accents collide.

Name extraction
---------------
:func:`parse_names` recovers a species and a civilization name from free-form
model output.  The accepted grammar, tried in order:

1. A JSON object, optionally wrapped in a Markdown code fence, with the keys
   ``speciesName`` and ``civilizationName`` (``species_name`` and
   ``civilization_name`` are also accepted).
2. Plain lines: the first non-empty line is the species name, the second is
   the civilization name.  List markers, ``Label:`` prefixes and surrounding
   quotes are stripped.  A single line is split on its first comma.
"""

from __future__ import annotations

import json
import re
import unicodedata

from loremaster.core.errors import ProviderError

SEPARATOR = "_"
FALLBACK_PART = "unnamed"

_UNSAFE_RUN = re.compile(r"[^a-z0-9-]+")
_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_LABEL = re.compile(r"^[A-Za-z ]{0,30}:\s*")

_SPECIES_KEYS = ("speciesName", "species_name", "species")
_CIVILIZATION_KEYS = ("civilizationName", "civilization_name", "civilization")


def _normalize_part(name: str) -> str:
    # Fold accents to ASCII before case-folding so "Vréshari" -> "vreshari".
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    safe = _UNSAFE_RUN.sub(SEPARATOR, ascii_name.casefold())
    return safe.strip("_-") or FALLBACK_PART


def name_folder(species_name: str, civilization_name: str) -> str:
    """Derive the output folder name for a species/civilization pair.

    Both names are folded to ASCII, case-folded, and every run of characters
    outside ``[a-z0-9-]`` (whitespace included) is collapsed to ``_``.  A name
    with nothing left after normalization becomes ``"unnamed"``, so the result
    is never empty.

    Args:
        species_name: Invented species name.
        civilization_name: Invented civilization name.

    Returns:
        ``"<species>_<civilization>"`` in normalized form.
    """
    return SEPARATOR.join(
        (_normalize_part(species_name), _normalize_part(civilization_name))
    )


def _clean_line(line: str) -> str:
    line = _LIST_MARKER.sub("", line.strip())
    line = _LABEL.sub("", line)
    return line.strip().strip("\"'*`").strip()


def _from_json(text: str) -> tuple[str, str] | None:
    candidate = _FENCE.sub("", text.strip())
    start, end = candidate.find("{"), candidate.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    species = next((data[k] for k in _SPECIES_KEYS if isinstance(data.get(k), str)), "")
    civilization = next(
        (data[k] for k in _CIVILIZATION_KEYS if isinstance(data.get(k), str)), ""
    )
    if species.strip() and civilization.strip():
        return species.strip(), civilization.strip()
    return None


def _from_lines(text: str) -> tuple[str, str] | None:
    lines = [
        cleaned
        for cleaned in (_clean_line(raw) for raw in text.splitlines())
        if cleaned and not cleaned.startswith("```")
    ]
    if len(lines) == 1 and "," in lines[0]:
        lines = [_clean_line(part) for part in lines[0].split(",", 1)]
    if len(lines) >= 2 and lines[0] and lines[1]:
        return lines[0], lines[1]
    return None


def parse_names(text: str) -> tuple[str, str]:
    """Extract ``(species_name, civilization_name)`` from model output.

    Args:
        text: Raw completion text.

    Returns:
        The two names, stripped.

    Raises:
        ProviderError: If neither grammar yields two non-empty names.
    """
    names = _from_json(text) or _from_lines(text)
    if names is None:
        raise ProviderError(f"Could not extract species and civilization names from: {text!r}")
    return names
