from __future__ import annotations

import pytest

from furiganizer.ruby import (
    RubyStyle,
    gloss_chars,
    gloss_ruby,
    render_char_ruby,
    render_ruby,
    render_word_ruby,
)


def test_word_level_styles() -> None:
    assert render_ruby("漢字", "かんじ", RubyStyle.INK_BRACKET) == "漢字《かんじ》"
    assert render_ruby("漢字", "かんじ", RubyStyle.XHTML) == "<ruby>漢字<rt>かんじ</rt></ruby>"


def test_per_character_styles_pair_kanji_with_reading_positions() -> None:
    assert render_char_ruby("山川", "やま", RubyStyle.INK_BRACKET) == "山【や】川【ま】"
    assert (
        render_ruby("山川", "やま", RubyStyle.XHTML, per_character=True)
        == "<ruby>山<rt>や</rt></ruby><ruby>川<rt>ま</rt></ruby>"
    )


def test_per_character_copies_kana_and_leftover_kanji() -> None:
    assert render_char_ruby("食べ物", "た", RubyStyle.INK_BRACKET) == "食【た】べ物"


def test_missing_or_identical_reading_renders_bare_surface() -> None:
    assert render_word_ruby("漢字", None, RubyStyle.INK_BRACKET) == "漢字"
    assert render_word_ruby("漢字", "", RubyStyle.XHTML) == "漢字"
    assert render_char_ruby("ひらがな", "ひらがな", RubyStyle.INK_BRACKET) == "ひらがな"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("ink", RubyStyle.INK_BRACKET),
        ("INK_BRACKET", RubyStyle.INK_BRACKET),
        ("墨つき括弧", RubyStyle.INK_BRACKET),
        ("xhtml", RubyStyle.XHTML),
        ("XHTML", RubyStyle.XHTML),
        (RubyStyle.XHTML, RubyStyle.XHTML),
    ],
)
def test_style_parsing(raw: object, expected: RubyStyle) -> None:
    assert RubyStyle.parse(raw) is expected


def test_unknown_style_is_rejected() -> None:
    with pytest.raises(ValueError):
        RubyStyle.parse("markdown")


def test_gloss_reports_only_wrapped_kanji() -> None:
    assert gloss_chars("食べ物", "た", RubyStyle.INK_BRACKET).glossed == "食"
    assert gloss_ruby("食べ物", "たべもの", RubyStyle.XHTML).glossed == "食物"
    assert gloss_ruby("漢字", None, RubyStyle.INK_BRACKET).glossed == ""
