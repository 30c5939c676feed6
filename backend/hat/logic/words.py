"""
Word sources: the injected capability that samples a match's words.

The match consumes a WordSource once at start and never re-queries it
mid-round. ``ListWordSource`` samples from entries held in memory;
``CsvWordSource`` loads ``word,category,level`` rows from a file first.
"""

from __future__ import annotations

import csv
import random
import re
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict

from hat.logic.exceptions import InsufficientWordsError
from hat.logic.settings import MAX_WORDS_PER_MATCH, WordFilters

logger = structlog.get_logger()

HARD_LEVELS = ("hard", "повышенный")
NORMAL_LEVELS = ("normal", "обычный")

_WORD_PUNCTUATION_RE = re.compile(r"[.,!?:;\"'()\-–—]")
_WHITESPACE_RE = re.compile(r"\s+")
_HEADER_MARKERS = ("word", "слово")


class WordSource(Protocol):
    """Protocol for sampling distinct words for a match."""

    def select_words(self, count: int, filters: WordFilters | None = None) -> list[str]: ...


class WordEntry(BaseModel):
    """A dictionary word with optional category and difficulty level."""

    model_config = ConfigDict(frozen=True)

    word: str
    category: str | None = None
    level: str | None = None

    @staticmethod
    def normalize_word(word: str) -> str:
        """Normalize a word for duplicate detection."""
        text = word.lower().strip().replace("ё", "е")
        text = _WORD_PUNCTUATION_RE.sub("", text)
        return _WHITESPACE_RE.sub(" ", text).strip()

    def matches_filters(
        self,
        categories: tuple[str, ...] | None = None,
        levels: tuple[str, ...] | None = None,
    ) -> bool:
        """Check category/level membership, case-insensitively."""
        if categories:
            wanted = {c.strip().lower() for c in categories}
            if not self.category or self.category.lower() not in wanted:
                return False
        if levels:
            wanted = {lvl.strip().lower() for lvl in levels}
            if not self.level or self.level.lower() not in wanted:
                return False
        return True


class ListWordSource:
    """Samples words from an in-memory list of entries.

    Filtering falls back to the whole dictionary when nothing matches,
    and at most MAX_WORDS_PER_MATCH words are ever sampled. With a
    positive hard percentage, that share of the sample is drawn from
    ``hard`` entries and the rest from ``normal`` ones, topping up from the
    filtered pool when either level runs short.
    """

    def __init__(self, entries: list[WordEntry], rng: random.Random | None = None) -> None:
        self._entries = self._dedupe(entries)
        self._rng = rng or random.Random()  # noqa: S311

    @classmethod
    def from_words(cls, words: list[str], rng: random.Random | None = None) -> ListWordSource:
        return cls([WordEntry(word=w) for w in words], rng=rng)

    @property
    def entries(self) -> list[WordEntry]:
        return list(self._entries)

    def select_words(self, count: int, filters: WordFilters | None = None) -> list[str]:
        """
        Sample ``count`` distinct words.

        Raises InsufficientWordsError (carrying every word that could be
        supplied) when the filtered pool is smaller than requested.
        """
        filters = filters or WordFilters()
        valid_count = min(MAX_WORDS_PER_MATCH, count)
        pool = self._filtered(filters.categories, filters.levels)

        if filters.hard_percentage > 0:
            selected = self._select_with_hard_share(valid_count, filters, pool)
        else:
            selected = self._sample(pool, valid_count)

        if len(selected) < valid_count:
            logger.warning("word source short", requested=valid_count, available=len(selected))
            raise InsufficientWordsError(valid_count, selected)
        return selected

    def _select_with_hard_share(self, count: int, filters: WordFilters, pool: list[WordEntry]) -> list[str]:
        hard_count = round(filters.hard_percentage / 100 * count)
        normal_count = count - hard_count
        hard_pool = [e for e in pool if e.matches_filters(levels=HARD_LEVELS)]
        normal_pool = [e for e in pool if e.matches_filters(levels=NORMAL_LEVELS)]

        selected = self._sample(hard_pool, hard_count) + self._sample(normal_pool, normal_count)
        if len(selected) < count:
            taken = set(selected)
            rest = [e for e in pool if e.word not in taken]
            selected += self._sample(rest, count - len(selected))
        return selected

    def _filtered(self, categories: tuple[str, ...] | None, levels: tuple[str, ...] | None) -> list[WordEntry]:
        pool = [e for e in self._entries if e.matches_filters(categories, levels)]
        if not pool:
            return list(self._entries)
        return pool

    def _sample(self, pool: list[WordEntry], count: int) -> list[str]:
        if count <= 0 or not pool:
            return []
        chosen = self._rng.sample(pool, min(count, len(pool)))
        return [e.word for e in chosen]

    @staticmethod
    def _dedupe(entries: list[WordEntry]) -> list[WordEntry]:
        seen: set[str] = set()
        result: list[WordEntry] = []
        for entry in entries:
            normalized = WordEntry.normalize_word(entry.word)
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)
            result.append(entry)
        return result


class CsvWordSource(ListWordSource):
    """ListWordSource loaded from a ``word,category,level`` CSV file.

    A first row mentioning "word" is treated as a header. Raises OSError
    when the file cannot be read.
    """

    def __init__(self, file_path: str | Path, rng: random.Random | None = None) -> None:
        self._file_path = Path(file_path)
        super().__init__(self._load(), rng=rng)
        logger.info("dictionary loaded", path=str(self._file_path), words=len(self._entries))

    def _load(self) -> list[WordEntry]:
        try:
            text = self._file_path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Failed to load words from {self._file_path}"
            raise OSError(msg) from exc

        rows = [row for row in csv.reader(text.splitlines()) if row and any(cell.strip() for cell in row)]
        if rows and any(marker in rows[0][0].lower() for marker in _HEADER_MARKERS):
            rows = rows[1:]

        entries: list[WordEntry] = []
        for row in rows:
            word = row[0].strip()
            if not word:
                continue
            category = row[1].strip() if len(row) > 1 and row[1].strip() else None
            level = row[2].strip().lower() if len(row) > 2 and row[2].strip() else None  # noqa: PLR2004
            entries.append(WordEntry(word=word, category=category, level=level))
        return entries
