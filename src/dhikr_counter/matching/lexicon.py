"""
Phrase lexicon: canonical phrase keys, their surface-form variants and the
token patterns the matcher tries.

The pattern list is built once at startup and never changes afterwards.
Patterns are ordered longest-first; patterns of equal length keep the order
in which the lexicon declares them, but callers should not rely on that.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from dhikr_counter.matching.normalizer import normalize, tokenize
from dhikr_counter.models import Pattern, PhraseKey


class LexiconError(Exception):
    pass


DEFAULT_PHRASES: Dict[PhraseKey, List[str]] = {
    "subhanallah": [
        "subhanallah", "subhan allah", "subhan", "subhan allah wa", "سبحان الله",
        "subhan alaah", "subhan allaah", "subhan alah", "subhanlah", "subhaanallah",
    ],
    "alhamdulillah": [
        "Alhamdulillah", "Al hamdulillah", "Al hamdu lillah", "Alhamdullilah",
        "Alhamdulila", "الحمد لله", "Al hamdulilah", "Alhamdillah",
    ],
    "allahuakbar": [
        "allahu akbar", "allah akbar", "allah hu akbar", "allahuakbar", "الله أكبر",
        "allahu akber", "allahu akbaru", "allahu akbarr", "allahu akbarrr",
    ],
    "lailahaillallah": [
        "la ilaha illallah", "la ilaha illa allah", "la ilaha illalah",
        "لا إله إلا الله", "la illaha illallah", "la ilaha", "la ilaha illa lah",
        "la ilaha illallh", "la ilaha illalahh",
    ],
    "astaghfirullah": [
        "astaghfirullah", "astagfirullah", "astaghfir", "astaghfiru", "astaghfiru allah",
        "أستغفر الله", "astaghfirullaha", "astaghfirlah", "astagfirullaha",
    ],
    "hasbunallah": [
        "hasbunallah", "hasbun allah wa ni mal wakeel", "hasbuna allah",
        "hasbunallah wanimal wakeel", "حسبنا الله ونعم الوكيل",
        "hasbuna allah wa ni mal wakeel", "hasbunallah w ni mal wakeel",
    ],
    "salawat_extended": [
        "allahumma salli ala muhammad wa ala ali muhammad",
        "allahumma salli ala muhammad wa ala aali muhammad",
        "allahumma salli ala muhammad wa ala al muhammad",
        "اللهم صل على محمد وعلى آل محمد",
        "allahumma salli ala sayyidina muhammad wa ala ali sayyidina muhammad",
    ],
    "subhanallah_wa_bihamdihi": [
        "subhanallah wa bihamdihi", "subhan allah wa bihamdihi", "سبحان الله وبحمده",
        "subhanallah w bihamdihi", "subhanallah wa bihamdihi wa la ilaha illa Allah",
    ],
    "subhanallahil_azeem": [
        "subhanallahil azeem", "subhan allahil azeem", "سبحان الله العظيم",
        "subhanallahil azim",
    ],
}

DEFAULT_LABELS: Dict[PhraseKey, str] = {
    "subhanallah": "سبحان الله",
    "alhamdulillah": "الحمد لله",
    "allahuakbar": "الله أكبر",
    "lailahaillallah": "لا إله إلا الله",
    "astaghfirullah": "أستغفر الله",
    "hasbunallah": "حسبنا الله ونعم الوكيل",
    "salawat_extended": "اللهم صل على محمد وعلى آل محمد",
    "subhanallah_wa_bihamdihi": "سبحان الله وبحمده",
    "subhanallahil_azeem": "سبحان الله العظيم",
}


def build_entries(phrases: Mapping[PhraseKey, Sequence[str]]) -> Tuple[Pattern, ...]:
    entries: List[Pattern] = []
    for key, variants in phrases.items():
        for variant in variants:
            tokens = tokenize(normalize(variant))
            if not tokens:
                print(f"[LEXICON] Skipping empty variant for '{key}': {variant!r}")
                continue
            entries.append(Pattern(key=key, tokens=tuple(tokens), length=len(tokens)))
    # sorted() is stable: equal lengths keep declaration order
    return tuple(sorted(entries, key=lambda p: p.length, reverse=True))


@dataclass(frozen=True)
class Lexicon:
    keys: Tuple[PhraseKey, ...]
    phrases: Mapping[PhraseKey, Tuple[str, ...]]
    labels: Mapping[PhraseKey, str]
    entries: Tuple[Pattern, ...]

    @classmethod
    def from_phrases(cls, phrases: Mapping[PhraseKey, Sequence[str]],
                     labels: Optional[Mapping[PhraseKey, str]] = None) -> "Lexicon":
        labels = labels or {}
        frozen = {key: tuple(variants) for key, variants in phrases.items()}
        return cls(
            keys=tuple(frozen.keys()),
            phrases=frozen,
            labels={key: labels.get(key, key) for key in frozen},
            entries=build_entries(frozen),
        )

    def label(self, key: PhraseKey) -> str:
        return self.labels.get(key, key)


def default_lexicon() -> Lexicon:
    return Lexicon.from_phrases(DEFAULT_PHRASES, DEFAULT_LABELS)


def _sanitize_phrases(raw: object) -> Dict[PhraseKey, List[str]]:
    if not isinstance(raw, dict):
        raise LexiconError("'phrases' must be an object of key -> list of variants")
    out: Dict[PhraseKey, List[str]] = {}
    for key, variants in raw.items():
        if not isinstance(key, str) or not key.strip() or not isinstance(variants, list):
            print(f"[LEXICON] Ignoring malformed phrase entry: {key!r}")
            continue
        kept = [v for v in variants if isinstance(v, str) and v.strip()]
        if kept:
            out[key.strip()] = kept
    return out


def load_lexicon(path: str | Path) -> Lexicon:
    """
    Load a lexicon from a JSON file:

        {"phrases": {"subhanallah": ["subhanallah", "subhan allah"]},
         "labels": {"subhanallah": "سبحان الله"}}

    "labels" is optional. Keys whose variants are all malformed are dropped.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise LexiconError(f"Cannot read lexicon {path}: {e}") from e

    if not isinstance(data, dict):
        raise LexiconError(f"Lexicon {path} must contain a JSON object")

    phrases = _sanitize_phrases(data.get("phrases"))
    if not phrases:
        raise LexiconError(f"Lexicon {path} defines no usable phrases")

    labels = data.get("labels") or {}
    if not isinstance(labels, dict):
        raise LexiconError("'labels' must be an object of key -> display text")
    labels = {k: v for k, v in labels.items() if isinstance(k, str) and isinstance(v, str)}

    lexicon = Lexicon.from_phrases(phrases, labels)
    print(f"[LEXICON] Loaded {len(lexicon.keys)} phrases, {len(lexicon.entries)} patterns from {path}")
    return lexicon


def _is_arabic(text: str) -> bool:
    return any(0x0600 <= ord(ch) <= 0x06FF for ch in text)


def recognizer_hint(lexicon: Lexicon, max_chars: int = 200) -> str:
    """
    Build an initial prompt that biases the recognizer towards the lexicon.
    Only script-form variants are used since the recognizer transcribes Arabic.
    """
    seen = set()
    parts: List[str] = []
    for key in lexicon.keys:
        for variant in lexicon.phrases[key]:
            text = " ".join(variant.split())
            if not _is_arabic(text) or text in seen:
                continue
            seen.add(text)
            parts.append(text)

    hint = "، ".join(parts)
    if len(hint) > max_chars:
        hint = hint[:max_chars].rsplit("،", 1)[0].strip()
    return hint
