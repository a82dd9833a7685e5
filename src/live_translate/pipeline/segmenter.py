"""
Phrase Segmenter for the Live Translation Pipeline.

This module turns an open-ended stream of overlapping transcript revisions
into fixed-size word groups ("phrases") in the order the words were spoken.
Every word reaches exactly one phrase, even though partial revisions preview
text that a later final revision repeats.

Architecture:
    TranscriptSource → PhraseSegmenter.on_revision() → phrase queue

Deduplication is ledger based. The segmenter remembers which words of the
current partial run it has already consumed (the partial baseline) and every
word it has consumed this session (the ledger). When a final arrives, the
longest of those two that is a word-prefix of the final is stripped and only
the remainder is new. A final that matches neither is treated as entirely new
text: sources give no reliable revision ordering (reconnects can rewind), and
a rare duplicate word is preferred over dropping speech.

Usage:
    segmenter = PhraseSegmenter(phrase_size=10)

    # For every revision delivered by the transcript source:
    for phrase in segmenter.on_revision(revision):
        translation_stage.enqueue(phrase)

    # When capture stops:
    for phrase in segmenter.flush():
        translation_stage.enqueue(phrase)
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from .types import Phrase, TranscriptRevision

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = re.compile(r"^[^\w']+|[^\w']+$")


def _normalize(word: str) -> str:
    return _EDGE_PUNCTUATION.sub("", word.casefold())


def _starts_with(words: Sequence[str], prefix: Sequence[str]) -> bool:
    if len(prefix) > len(words):
        return False
    return all(
        _normalize(word) == _normalize(expected)
        for word, expected in zip(words, prefix)
    )


class PhraseSegmenter:
    """
    Stateful segmenter that converts transcript revisions into phrases.

    Full phrases are emitted as soon as enough new words exist. Words left
    over after a final are held and prefixed onto the next revision's words;
    only flush() emits a short phrase.

    Attributes:
        phrase_size: Number of words per phrase (N).
        match_ledger: Whether finals may be deduplicated against the whole
            session ledger. Sources whose finals are cumulative keep this on;
            sources that finalize one utterance at a time turn it off.
    """

    def __init__(self, phrase_size: int = 10, *, match_ledger: bool = True):
        if phrase_size < 1:
            raise ValueError("phrase_size must be at least 1")
        self.phrase_size = phrase_size
        self.match_ledger = match_ledger
        self._ledger_words: List[str] = []
        self._pending: List[str] = []
        self._partial_words: List[str] = []
        self._consumed_partial: List[str] = []
        self._next_index = 0

    # -- revisions ---------------------------------------------------------

    def on_revision(self, revision: TranscriptRevision) -> List[Phrase]:
        """
        Consume one revision and return the phrases it completes.

        Args:
            revision: Partial or final transcript update.

        Returns:
            Zero or more phrases, in speech order.
        """
        if revision.is_final:
            return self._consume_final(revision.text)
        return self._consume_partial(revision.text)

    def _consume_partial(self, text: str) -> List[Phrase]:
        words = text.split()
        self._partial_words = words
        unprocessed = len(words) - len(self._consumed_partial)

        phrases: List[Phrase] = []
        while unprocessed > 0 and len(self._pending) + unprocessed >= self.phrase_size:
            take = self.phrase_size - len(self._pending)
            start = len(self._consumed_partial)
            chunk = words[start:start + take]
            self._ledger_words.extend(chunk)
            self._consumed_partial.extend(chunk)
            unprocessed -= take
            phrases.append(self._emit(self._pending + chunk))
            self._pending = []
        return phrases

    def _consume_final(self, text: str) -> List[Phrase]:
        words = text.split()
        baseline = self._consumed_partial
        suffix = words[self._matched_prefix_length(words, baseline):]

        self._ledger_words.extend(suffix)
        self._pending.extend(suffix)
        self._partial_words = []
        self._consumed_partial = []
        return self._emit_full_groups()

    def _matched_prefix_length(
        self, words: Sequence[str], baseline: Sequence[str]
    ) -> int:
        candidates = [baseline]
        if self.match_ledger:
            candidates.append(self._ledger_words)

        matched = 0
        for candidate in candidates:
            if candidate and len(candidate) > matched and _starts_with(words, candidate):
                matched = len(candidate)

        if matched == 0 and baseline:
            logger.warning(
                f"Final revision diverged from {len(baseline)} consumed partial words; "
                f"treating all {len(words)} words as new"
            )
        return matched

    # -- lifecycle ---------------------------------------------------------

    def interrupt(self) -> List[Phrase]:
        """
        Close the current partial run without a final.

        Used when the recognizer connection drops mid-utterance: the words of
        the last partial that were not yet consumed are kept as held words so
        a restarted recognizer does not lose them.
        """
        tail = self._partial_words[len(self._consumed_partial):]
        self._ledger_words.extend(tail)
        self._pending.extend(tail)
        self._partial_words = []
        self._consumed_partial = []
        return self._emit_full_groups()

    def flush(self) -> List[Phrase]:
        """
        Emit every held word and clear all state.

        Call this when capture stops. The last phrase may be shorter than
        phrase_size.
        """
        phrases = self.interrupt()
        if self._pending:
            phrases.append(self._emit(self._pending))
        self.reset()
        return phrases

    def reset(self) -> None:
        """Reset segmenter state for a new session."""
        self._ledger_words = []
        self._pending = []
        self._partial_words = []
        self._consumed_partial = []
        self._next_index = 0

    # -- helpers -----------------------------------------------------------

    def _emit_full_groups(self) -> List[Phrase]:
        phrases: List[Phrase] = []
        while len(self._pending) >= self.phrase_size:
            phrases.append(self._emit(self._pending[:self.phrase_size]))
            self._pending = self._pending[self.phrase_size:]
        return phrases

    def _emit(self, words: Sequence[str]) -> Phrase:
        phrase = Phrase(index=self._next_index, words=tuple(words))
        self._next_index += 1
        logger.debug(f"Emitting phrase #{phrase.index} ({len(phrase)} words): {phrase.text}")
        return phrase

    @property
    def ledger(self) -> str:
        """All words consumed this session, space separated."""
        return " ".join(self._ledger_words)

    @property
    def processed_since_last_final(self) -> int:
        return len(self._consumed_partial)

    @property
    def pending_words(self) -> tuple[str, ...]:
        """Words consumed but not yet grouped into a phrase."""
        return tuple(self._pending)


__all__ = ["PhraseSegmenter"]
