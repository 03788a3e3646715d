from typing import Dict, Iterable, List, Sequence, Tuple

from dhikr_counter.matching.lexicon import Lexicon
from dhikr_counter.models import Pattern, PhraseKey

Span = Tuple[int, int, PhraseKey]  # (start, end exclusive, key)


def _matches_at(tokens: Sequence[str], used: List[bool], start: int, pattern: Pattern) -> bool:
    end = start + pattern.length
    if end > len(tokens):
        return False
    for offset, expected in enumerate(pattern.tokens):
        pos = start + offset
        if used[pos] or tokens[pos] != expected:
            return False
    return True


def find_spans(tokens: Sequence[str], entries: Sequence[Pattern]) -> List[Span]:
    """
    Greedy left-to-right scan: at each unused position the first pattern (in
    longest-first order) that fits on unused tokens wins and consumes them.
    Not a maximum-count matching; the result depends only on the pattern order.
    """
    used = [False] * len(tokens)
    spans: List[Span] = []
    i = 0
    while i < len(tokens):
        if used[i]:
            i += 1
            continue
        for pattern in entries:
            if _matches_at(tokens, used, i, pattern):
                end = i + pattern.length
                for pos in range(i, end):
                    used[pos] = True
                spans.append((i, end, pattern.key))
                i = end
                break
        else:
            i += 1
    return spans


def match_all(tokens: Sequence[str], entries: Sequence[Pattern],
              keys: Iterable[PhraseKey]) -> Dict[PhraseKey, int]:
    counts = {key: 0 for key in keys}
    for _, _, key in find_spans(tokens, entries):
        counts[key] = counts.get(key, 0) + 1
    return counts


class Matcher:
    def __init__(self, lexicon: Lexicon):
        self.lexicon = lexicon

    def match_all(self, tokens: Sequence[str]) -> Dict[PhraseKey, int]:
        return match_all(tokens, self.lexicon.entries, self.lexicon.keys)

    def spans(self, tokens: Sequence[str]) -> List[Span]:
        return find_spans(tokens, self.lexicon.entries)
