"""Tests for the phrase segmenter."""

import pytest

from live_translate.pipeline.segmenter import PhraseSegmenter
from live_translate.pipeline.types import TranscriptRevision


def _words(count: int, start: int = 0) -> str:
    return " ".join(f"w{i}" for i in range(start, start + count))


def _feed(segmenter: PhraseSegmenter, *revisions: TranscriptRevision):
    phrases = []
    for revision in revisions:
        phrases.extend(segmenter.on_revision(revision))
    return phrases


def test_short_partial_then_final_yields_one_phrase():
    segmenter = PhraseSegmenter(10)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial(_words(7)),
        TranscriptRevision.final(_words(10)),
    )

    assert [p.text for p in phrases] == [_words(10)]
    assert phrases[0].index == 0
    assert segmenter.processed_since_last_final == 0
    assert segmenter.pending_words == ()


def test_partial_emits_as_soon_as_phrase_is_full():
    segmenter = PhraseSegmenter(10)

    assert segmenter.on_revision(TranscriptRevision.partial(_words(9))) == []
    phrases = segmenter.on_revision(TranscriptRevision.partial(_words(12)))

    assert [p.text for p in phrases] == [_words(10)]
    assert segmenter.processed_since_last_final == 10


def test_final_repeating_consumed_partial_words_is_not_duplicated():
    segmenter = PhraseSegmenter(10)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial(_words(12)),
        TranscriptRevision.final(_words(12)),
    )

    assert [p.text for p in phrases] == [_words(10)]
    # Leftover words are held, not flushed mid-session
    assert segmenter.pending_words == ("w10", "w11")
    assert segmenter.ledger == _words(12)


def test_held_words_prefix_the_next_utterance():
    segmenter = PhraseSegmenter(10)

    phrases = _feed(
        segmenter,
        TranscriptRevision.final(_words(4)),
        TranscriptRevision.partial(_words(3, start=4)),
        TranscriptRevision.partial(_words(6, start=4)),
    )

    assert [p.text for p in phrases] == [_words(10)]
    assert segmenter.pending_words == ()


def test_every_word_reaches_exactly_one_phrase():
    segmenter = PhraseSegmenter(3)
    revisions = [
        TranscriptRevision.partial("one two"),
        TranscriptRevision.partial("one two three four"),
        TranscriptRevision.partial("one two three four five"),
        TranscriptRevision.final("one two three four five"),
        TranscriptRevision.partial("six seven"),
        TranscriptRevision.final("six seven eight"),
    ]

    phrases = _feed(segmenter, *revisions)
    phrases.extend(segmenter.flush())

    spoken = [word for phrase in phrases for word in phrase.words]
    assert spoken == "one two three four five six seven eight".split()
    assert [p.index for p in phrases] == list(range(len(phrases)))


def test_prefix_match_ignores_case_and_punctuation():
    segmenter = PhraseSegmenter(3)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial("hello there my"),
        TranscriptRevision.final("Hello, there my friend."),
    )

    assert [p.text for p in phrases] == ["hello there my"]
    assert segmenter.pending_words == ("friend.",)


def test_diverging_final_is_treated_as_new_text():
    segmenter = PhraseSegmenter(3)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial("alpha beta gamma delta"),
        TranscriptRevision.final("completely different words"),
    )

    assert [p.text for p in phrases] == ["alpha beta gamma", "completely different words"]


def test_shrinking_partial_keeps_consumed_words_out_of_the_final():
    segmenter = PhraseSegmenter(3, match_ledger=False)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial("a b c d"),
        TranscriptRevision.partial("a b"),
        TranscriptRevision.final("a b c d e f"),
    )
    phrases.extend(segmenter.flush())

    assert [p.text for p in phrases] == ["a b c", "d e f"]


def test_partial_growing_again_after_shrinking_resumes_after_consumed_words():
    segmenter = PhraseSegmenter(3, match_ledger=False)

    phrases = _feed(
        segmenter,
        TranscriptRevision.partial("a b c"),
        TranscriptRevision.partial("a"),
        TranscriptRevision.partial("a b c d e f"),
    )

    assert [p.text for p in phrases] == ["a b c", "d e f"]
    assert segmenter.processed_since_last_final == 6


def test_cumulative_finals_match_against_ledger():
    segmenter = PhraseSegmenter(3, match_ledger=True)

    phrases = _feed(
        segmenter,
        TranscriptRevision.final("a b c"),
        TranscriptRevision.final("a b c d e f"),
    )

    assert [p.text for p in phrases] == ["a b c", "d e f"]


def test_ledger_matching_can_be_disabled():
    segmenter = PhraseSegmenter(3, match_ledger=False)

    phrases = _feed(
        segmenter,
        TranscriptRevision.final("a b c"),
        TranscriptRevision.final("a b c"),
    )

    assert [p.text for p in phrases] == ["a b c", "a b c"]


def test_flush_emits_short_remainder_including_partial_tail():
    segmenter = PhraseSegmenter(10)
    _feed(
        segmenter,
        TranscriptRevision.final(_words(3)),
        TranscriptRevision.partial(_words(2, start=3)),
    )

    phrases = segmenter.flush()

    assert [p.text for p in phrases] == [_words(5)]
    assert segmenter.ledger == ""
    assert segmenter.pending_words == ()


def test_flush_with_nothing_held_emits_nothing():
    segmenter = PhraseSegmenter(10)
    _feed(segmenter, TranscriptRevision.final(_words(10)))

    assert segmenter.flush() == []


def test_interrupt_keeps_unconsumed_partial_words():
    segmenter = PhraseSegmenter(4)
    _feed(segmenter, TranscriptRevision.partial("one two three four five six"))

    assert segmenter.interrupt() == []
    assert segmenter.pending_words == ("five", "six")
    assert segmenter.processed_since_last_final == 0

    # A restarted recognizer begins a fresh partial run
    phrases = _feed(segmenter, TranscriptRevision.partial("seven eight"))
    assert [p.text for p in phrases] == ["five six seven eight"]


def test_reset_clears_indices_and_ledger():
    segmenter = PhraseSegmenter(2)
    _feed(segmenter, TranscriptRevision.final("a b c"))

    segmenter.reset()

    assert segmenter.ledger == ""
    phrases = _feed(segmenter, TranscriptRevision.final("x y"))
    assert phrases[0].index == 0


def test_phrase_size_must_be_positive():
    with pytest.raises(ValueError):
        PhraseSegmenter(0)
