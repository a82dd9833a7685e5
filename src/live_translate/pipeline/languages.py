"""Source languages the transcript sources are configured for."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    code: str
    name: str


SUPPORTED_LANGUAGES: tuple[Language, ...] = (
    Language("lv", "Latvian"),
    Language("en", "English"),
    Language("es", "Spanish"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("it", "Italian"),
    Language("pt", "Portuguese"),
    Language("ru", "Russian"),
    Language("zh", "Chinese"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
)

_BY_CODE = {language.code: language for language in SUPPORTED_LANGUAGES}


def get_language(code: str) -> Language | None:
    return _BY_CODE.get(code.strip().lower())


__all__ = ["Language", "SUPPORTED_LANGUAGES", "get_language"]
