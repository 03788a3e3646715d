import re
import unicodedata
from typing import List, Optional

# Harakat, Quranic annotation marks and small high letters
_ARABIC_DIACRITICS_RE = re.compile(
    r"[\u064B-\u065F\u0610-\u061A\u06D6-\u06DC\u06DF-\u06E8\u06EA-\u06ED]"
)
_DISALLOWED_RE = re.compile(r"[^\u0600-\u06FFa-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_ELONGATION_RE = re.compile(r"([a-z])\1{2,}")


def strip_combining_marks(text: str) -> str:
    """Decompose and drop every combining mark.

    Falls back to stripping the Arabic diacritic ranges when the text
    cannot be decomposed.
    """
    try:
        decomposed = unicodedata.normalize("NFD", text)
    except (TypeError, ValueError):
        return _ARABIC_DIACRITICS_RE.sub("", text)
    return "".join(ch for ch in decomposed if not unicodedata.category(ch).startswith("M"))


def normalize(raw: Optional[str]) -> str:
    """
    Canonicalize a transcript or a lexicon variant for token comparison.
    "Subhaaanallah!" -> "subhaanallah", "Allahu AKBARRR" -> "allahu akbarr".
    """
    if not raw:
        return ""
    text = strip_combining_marks(str(raw))
    text = text.lower()
    text = _DISALLOWED_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    # Emphatic renderings: "akbarrr" -> "akbarr"
    text = _ELONGATION_RE.sub(r"\1\1", text)
    return text


def tokenize(normalized: str) -> List[str]:
    if not normalized:
        return []
    return [tok for tok in normalized.split() if tok]
