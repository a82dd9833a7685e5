"""Tests for the Deepgram continuous recognizer."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from live_translate.pipeline.errors import TranscriptSourceError
from live_translate.pipeline.types import TranscriptRevision
from live_translate.sources.deepgram import DeepgramConnection, DeepgramTranscriptSource


def _result(text: str, is_final: bool):
    alternative = SimpleNamespace(transcript=text)
    return SimpleNamespace(channel=SimpleNamespace(alternatives=[alternative]), is_final=is_final)


@pytest.fixture
def connection():
    revisions = []
    closed = []
    with patch("live_translate.sources.deepgram.DeepgramClient"):
        conn = DeepgramConnection(
            "dg-key",
            "lv",
            on_revision=revisions.append,
            on_closed=lambda: closed.append(True),
        )
    conn.revisions = revisions
    conn.closed = closed
    return conn


def test_interim_result_becomes_partial(connection):
    connection._handle_message(_result("labdien", is_final=False))

    assert connection.revisions == [TranscriptRevision.partial("labdien")]


def test_final_result_becomes_final(connection):
    connection._handle_message(_result("labdien visiem", is_final=True))

    assert connection.revisions == [TranscriptRevision.final("labdien visiem")]


def test_empty_interim_is_ignored(connection):
    connection._handle_message(_result("  ", is_final=False))

    assert connection.revisions == []


def test_messages_without_alternatives_are_ignored(connection):
    connection._handle_message(SimpleNamespace(type="Metadata"))
    connection._handle_message(SimpleNamespace(channel=SimpleNamespace(alternatives=[])))

    assert connection.revisions == []


def test_unrequested_close_reports_end(connection):
    connection._running = True

    connection._on_close(None)

    assert connection.closed == [True]


def test_close_after_stop_does_not_report_end(connection):
    connection.close()

    connection._on_close(None)

    assert connection.closed == []


@pytest.mark.asyncio
async def test_start_without_api_key_fails():
    source = DeepgramTranscriptSource(None)

    with pytest.raises(TranscriptSourceError, match="DEEPGRAM_API_KEY"):
        await source.start("lv", lambda revision: None, lambda: None)


def test_deepgram_finals_are_not_cumulative():
    source = DeepgramTranscriptSource("dg-key")

    assert source.cumulative_finals is False
    assert source.requires_token is False
