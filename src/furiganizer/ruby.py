from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .suppression import is_kanji

INK_BRACKET_OPEN = "《"
INK_BRACKET_CLOSE = "》"
INK_CHAR_OPEN = "【"
INK_CHAR_CLOSE = "】"


class RubyStyle(Enum):
    INK_BRACKET = "ink"
    XHTML = "xhtml"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]

    @classmethod
    def parse(cls, value: "str | RubyStyle") -> "RubyStyle":
        if isinstance(value, RubyStyle):
            return value
        key = str(value).strip()
        for style in cls:
            if key.lower() in {style.value, style.name.lower()} or key == style.label:
                return style
        raise ValueError(f"Unknown ruby style: {value!r}")


_STYLE_LABELS = {
    RubyStyle.INK_BRACKET: "墨つき括弧",
    RubyStyle.XHTML: "XHTML",
}


@dataclass(frozen=True)
class RubyGloss:
    text: str
    glossed: str = ""


def _wrap(base: str, reading: str, style: RubyStyle, *, per_character: bool) -> str:
    if style is RubyStyle.XHTML:
        return f"<ruby>{base}<rt>{reading}</rt></ruby>"
    if per_character:
        return f"{base}{INK_CHAR_OPEN}{reading}{INK_CHAR_CLOSE}"
    return f"{base}{INK_BRACKET_OPEN}{reading}{INK_BRACKET_CLOSE}"


def gloss_word(surface: str, reading: str | None, style: RubyStyle) -> RubyGloss:
    if not reading or reading == surface:
        return RubyGloss(surface)
    glossed = "".join(ch for ch in surface if is_kanji(ch))
    return RubyGloss(_wrap(surface, reading, style, per_character=False), glossed)


def gloss_chars(surface: str, reading: str | None, style: RubyStyle) -> RubyGloss:
    """
    Gloss each kanji with the reading character at the same kanji index.

    The pairing is positional only; kanji past the end of the reading are
    left bare and are not part of ``glossed``.
    """
    if not reading or reading == surface:
        return RubyGloss(surface)
    parts: list[str] = []
    glossed: list[str] = []
    kanji_index = 0
    for ch in surface:
        if not is_kanji(ch):
            parts.append(ch)
            continue
        if kanji_index < len(reading):
            parts.append(_wrap(ch, reading[kanji_index], style, per_character=True))
            glossed.append(ch)
            kanji_index += 1
        else:
            parts.append(ch)
    return RubyGloss("".join(parts), "".join(glossed))


def gloss_ruby(
    surface: str,
    reading: str | None,
    style: RubyStyle = RubyStyle.INK_BRACKET,
    *,
    per_character: bool = False,
) -> RubyGloss:
    if per_character:
        return gloss_chars(surface, reading, style)
    return gloss_word(surface, reading, style)


def render_word_ruby(surface: str, reading: str | None, style: RubyStyle) -> str:
    return gloss_word(surface, reading, style).text


def render_char_ruby(surface: str, reading: str | None, style: RubyStyle) -> str:
    return gloss_chars(surface, reading, style).text


def render_ruby(
    surface: str,
    reading: str | None,
    style: RubyStyle = RubyStyle.INK_BRACKET,
    *,
    per_character: bool = False,
) -> str:
    return gloss_ruby(surface, reading, style, per_character=per_character).text


__all__ = [
    "RubyGloss",
    "RubyStyle",
    "gloss_chars",
    "gloss_ruby",
    "gloss_word",
    "render_char_ruby",
    "render_ruby",
    "render_word_ruby",
]
