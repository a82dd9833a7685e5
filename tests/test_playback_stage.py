"""Tests for the serialized, timeout-bounded playback stage."""

import asyncio

import pytest

from live_translate.pipeline.errors import PlaybackError
from live_translate.pipeline.playback_stage import PlaybackStage
from live_translate.pipeline.types import Phrase, PlaybackOutcome, StageState, TranslatedPhrase
from live_translate.schemas.pipeline_settings import VoiceSettings


def _translated(index: int, text: str, locale: str = "en-US") -> TranslatedPhrase:
    source = Phrase(index=index, words=tuple(f"src{index}".split()))
    return TranslatedPhrase(source=source, text=text, locale=locale)


class ScriptedPlayer:
    """Speech player whose behaviour per utterance is scripted by text."""

    def __init__(self, hang=(), fail=()):
        self.hang = set(hang)
        self.fail = set(fail)
        self.spoken = []
        self.voices = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def speak(self, text, voice):
        self.spoken.append(text)
        self.voices.append(voice)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if text in self.hang:
                await asyncio.Event().wait()
            if text in self.fail:
                raise PlaybackError("speech engine failed")
            await asyncio.sleep(0)
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_plays_in_order_one_at_a_time():
    player = ScriptedPlayer()
    finished = []
    stage = PlaybackStage(
        player,
        on_finished=lambda item, outcome: finished.append((item.text, outcome)),
    )

    for index, text in enumerate(["Hello", "How are you", "Thanks"]):
        stage.enqueue(_translated(index, text))
    await stage.join()

    assert player.spoken == ["Hello", "How are you", "Thanks"]
    assert player.max_in_flight == 1
    assert [outcome for _, outcome in finished] == [PlaybackOutcome.COMPLETED] * 3
    assert stage.current_display == "Thanks"
    assert stage.state is StageState.IDLE


@pytest.mark.asyncio
async def test_hung_player_times_out_and_queue_advances():
    player = ScriptedPlayer(hang={"stuck"})
    finished = []
    stage = PlaybackStage(
        player,
        timeout=0.05,
        on_finished=lambda item, outcome: finished.append((item.text, outcome)),
    )

    stage.enqueue(_translated(0, "stuck"))
    stage.enqueue(_translated(1, "next"))
    await asyncio.wait_for(stage.join(), timeout=2.0)

    assert finished == [
        ("stuck", PlaybackOutcome.TIMED_OUT),
        ("next", PlaybackOutcome.COMPLETED),
    ]


@pytest.mark.asyncio
async def test_player_error_advances_queue():
    player = ScriptedPlayer(fail={"broken"})
    finished = []
    stage = PlaybackStage(
        player,
        on_finished=lambda item, outcome: finished.append((item.text, outcome)),
    )

    stage.enqueue(_translated(0, "broken"))
    stage.enqueue(_translated(1, "fine"))
    await stage.join()

    assert finished == [
        ("broken", PlaybackOutcome.ERRORED),
        ("fine", PlaybackOutcome.COMPLETED),
    ]


@pytest.mark.asyncio
async def test_started_callback_sees_display_text():
    player = ScriptedPlayer()
    started = []
    stage = PlaybackStage(player)
    stage.on_started = lambda item: started.append((item.text, stage.current_display))

    stage.enqueue(_translated(0, "Good morning"))
    await stage.join()

    assert started == [("Good morning", "Good morning")]


@pytest.mark.asyncio
async def test_voice_settings_use_item_locale():
    player = ScriptedPlayer()
    stage = PlaybackStage(player)
    stage.configure(VoiceSettings(locale="en-US", rate=1.2, pitch=0.9, volume=0.5), 5.0)

    stage.enqueue(_translated(0, "Bonjour", locale="fr-FR"))
    await stage.join()

    voice = player.voices[0]
    assert voice.locale == "fr-FR"
    assert voice.rate == 1.2
    assert voice.pitch == 0.9
    assert voice.volume == 0.5
    assert stage.timeout == 5.0


@pytest.mark.asyncio
async def test_reset_clears_display_and_queue():
    player = ScriptedPlayer(hang={"forever"})
    stage = PlaybackStage(player, timeout=10.0)

    stage.enqueue(_translated(0, "forever"))
    stage.enqueue(_translated(1, "later"))
    await asyncio.sleep(0.01)
    assert stage.current_display == "forever"

    stage.reset()

    assert stage.current_display == ""
    assert len(stage) == 0
    assert stage.state is StageState.IDLE
