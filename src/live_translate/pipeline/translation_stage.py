"""
Translation Stage: serialized translation of queued phrases.

Architecture:
    phrase queue → TranslationStage → translator → PlaybackStage queue

At most one translation call is in flight. A phrase whose translation fails
(provider error, non-success response, malformed payload) is removed anyway
and never retried, so one bad phrase cannot stall the pipeline.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from .errors import TranslationError
from .stage import SerializedStage
from .types import Phrase, TranslatedPhrase

logger = logging.getLogger(__name__)


class Translator(Protocol):
    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        ...


class TranslationStage(SerializedStage[Phrase]):
    """
    Drains the phrase queue one item at a time through a translator.

    Attributes:
        translator: Translation provider.
        on_translated: Called with each successful TranslatedPhrase, in order.
        on_dropped: Called with (phrase, reason) when a translation fails.
    """

    name = "translation"

    def __init__(
        self,
        translator: Translator,
        *,
        on_translated: Optional[Callable[[TranslatedPhrase], None]] = None,
        on_dropped: Optional[Callable[[Phrase, str], None]] = None,
    ):
        super().__init__()
        self.translator = translator
        self.on_translated = on_translated
        self.on_dropped = on_dropped
        self.source_language = "en"
        self.target_language = "en"
        self.locale = "en-US"

    def configure(self, source_language: str, target_language: str, locale: str) -> None:
        self.source_language = source_language
        self.target_language = target_language
        self.locale = locale

    async def _process(self, phrase: Phrase) -> None:
        try:
            text = await self.translator.translate(
                phrase.text, self.source_language, self.target_language
            )
        except TranslationError as exc:
            logger.warning(f"Dropping phrase #{phrase.index}: {exc}")
            self._drop(phrase, str(exc))
            return
        except Exception as exc:
            logger.error(
                f"Unexpected translation error for phrase #{phrase.index}: {exc}",
                exc_info=True,
            )
            self._drop(phrase, str(exc))
            return

        logger.info(f"Translated phrase #{phrase.index}: '{phrase.text}' -> '{text}'")
        if self.on_translated:
            self.on_translated(TranslatedPhrase(source=phrase, text=text, locale=self.locale))

    def _drop(self, phrase: Phrase, reason: str) -> None:
        if self.on_dropped:
            self.on_dropped(phrase, reason)


__all__ = ["TranslationStage", "Translator"]
