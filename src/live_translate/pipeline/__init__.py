"""
Live Translation Pipeline Package.

This package contains the streaming segmentation-and-relay core:

- segmenter: Turns overlapping transcript revisions into fixed-size phrases
- translation_stage: Serialized translation of queued phrases
- playback_stage: Serialized, timeout-bounded speech playback
- controller: Session lifecycle (IDLE ⇄ ACTIVE) and wiring

Architecture Overview:

    ┌──────────────────┐     ┌────────────────┐     ┌──────────────┐
    │ TranscriptSource │────▶│ PhraseSegmenter│────▶│ phrase queue │
    └──────────────────┘     └────────────────┘     └──────────────┘
                                                            │
                                                            ▼
                                                  ┌──────────────────┐
                                                  │ TranslationStage │
                                                  └──────────────────┘
                                                            │
                                                            ▼
                                                  ┌──────────────────┐
                                                  │ translated queue │
                                                  └──────────────────┘
                                                            │
                                                            ▼
                                                  ┌──────────────────┐
                                                  │  PlaybackStage   │
                                                  └──────────────────┘
                                                            │
                                                            ▼
                                                  ┌──────────────────┐
                                                  │   SpeechPlayer   │
                                                  └──────────────────┘

Everything runs on one event loop. Each stage has at most one external call
in flight, and no stage reads past its queue head, so the order words were
spoken in is the order their translations are spoken in.
"""

from .controller import SessionController
from .playback_stage import PlaybackStage
from .segmenter import PhraseSegmenter
from .translation_stage import TranslationStage
from .types import Phrase, SessionState, TranscriptRevision, TranslatedPhrase

__all__ = [
    "Phrase",
    "PhraseSegmenter",
    "PlaybackStage",
    "SessionController",
    "SessionState",
    "TranscriptRevision",
    "TranslatedPhrase",
    "TranslationStage",
]
