from __future__ import annotations

import random
from typing import Iterable


DEFAULT_WORDS: tuple[str, ...] = (
    "Triangle",
    "Square",
    "Circle",
    "Rectangle",
    "Star",
    "Heart",
    "Diamond",
    "Pentagon",
    "Hexagon",
    "Oval",
)


def dedupe_words(words: Iterable[str]) -> list[str]:
    """Trimmed, non-empty words in first-seen order, case-insensitively unique."""
    seen: set[str] = set()
    out: list[str] = []
    for w in words:
        if not isinstance(w, str):
            continue
        word = w.strip()
        key = word.casefold()
        if not word or key in seen:
            continue
        seen.add(key)
        out.append(word)
    return out


class WordBank:
    def __init__(self, words: Iterable[str] = DEFAULT_WORDS, rng: random.Random | None = None):
        self.words = dedupe_words(words)
        if not self.words:
            raise ValueError("word bank needs at least one word")
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self.words)

    def sample_distinct(self, count: int) -> list[str]:
        """Up to ``count`` distinct words, drawn uniformly at random."""
        count = max(0, min(count, len(self.words)))
        picked: list[str] = []
        while len(picked) < count:
            w = self._rng.choice(self.words)
            if w not in picked:
                picked.append(w)
        return picked

    def pick_one(self) -> str:
        return self._rng.choice(self.words)
