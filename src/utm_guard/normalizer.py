from __future__ import annotations

import re

from utm_guard.models import MACRO_TOKEN

TRANSLITERATIONS: dict[str, str] = {
    "ø": "o", "ö": "o", "ô": "o", "ò": "o", "ó": "o", "õ": "o",
    "å": "a", "ä": "a", "à": "a", "á": "a", "â": "a", "ã": "a",
    "æ": "ae",
    "ü": "u", "ù": "u", "ú": "u", "û": "u",
    "ë": "e", "è": "e", "é": "e", "ê": "e",
    "ï": "i", "ì": "i", "í": "i", "î": "i",
    "ÿ": "y", "ý": "y",
    "ñ": "n",
    "ç": "c",
    "ß": "ss",
}

# Private-use character; step 5 would drop it, so only shielded macros carry it.
_MACRO_SENTINEL = "\ue000"

_TRANSLITERATION_TABLE = str.maketrans(TRANSLITERATIONS)
_SEPARATOR_RE = re.compile(r"[\s\-–—]+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9_\ue000]")
_UNDERSCORE_RUN_RE = re.compile(r"_+")


def normalize_value(value: str, preserve_macro: bool = False) -> str:
    """Clean a UTM value down to ``[a-z0-9_]``.

    Lowercases, transliterates accented letters, turns whitespace and dashes
    into underscores, drops anything else and squeezes underscores. With
    ``preserve_macro`` the ``{keyword}`` token is carried through untouched.
    Idempotent.
    """
    result = value.replace(_MACRO_SENTINEL, "")
    if preserve_macro:
        result = result.replace(MACRO_TOKEN, _MACRO_SENTINEL)

    result = result.lower().translate(_TRANSLITERATION_TABLE)
    result = _SEPARATOR_RE.sub("_", result)
    result = _DISALLOWED_RE.sub("", result)
    result = _UNDERSCORE_RUN_RE.sub("_", result).strip("_")

    if preserve_macro:
        result = result.replace(_MACRO_SENTINEL, MACRO_TOKEN)
    return result
