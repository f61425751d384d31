from __future__ import annotations

import pytest

from furiganizer.chunking import PAGE_BREAK, Chunk, join_chunks, split_text_into_chunks


@pytest.mark.parametrize(
    "text",
    [
        "",
        "漢字は漢字です",
        "一行目\n二行目\r\n三行目\n",
        "前｛改頁｝後",
        "｛改頁｝｛改頁｝本文｛改頁｝",
        "「長い台詞だ。」と言った。\n" * 40,
        "a" * 50 + "\n" + "b" * 3,
    ],
)
def test_split_then_join_reconstructs_input(text: str) -> None:
    chunks = split_text_into_chunks(text, max_bytes=32)
    assert join_chunks(chunks) == text
    assert all(PAGE_BREAK not in chunk.text for chunk in chunks)


def test_empty_text_has_no_chunks() -> None:
    assert split_text_into_chunks("") == []


def test_page_break_closes_chunk_and_sets_flag() -> None:
    chunks = split_text_into_chunks("前の頁｛改頁｝次の頁")
    assert chunks == [
        Chunk(text="前の頁", ends_with_page_break=True),
        Chunk(text="次の頁"),
    ]


def test_leading_and_repeated_page_breaks_are_kept_as_empty_chunks() -> None:
    chunks = split_text_into_chunks("｛改頁｝｛改頁｝本文")
    assert [chunk.text for chunk in chunks] == ["", "", "本文"]
    assert [chunk.ends_with_page_break for chunk in chunks] == [True, True, False]


def test_trailing_page_break_flags_last_chunk() -> None:
    chunks = split_text_into_chunks("本文｛改頁｝")
    assert chunks == [Chunk(text="本文", ends_with_page_break=True)]


def test_lines_are_packed_until_budget_is_reached() -> None:
    chunks = split_text_into_chunks("aaaa\nbbbb\ncccc", max_bytes=10)
    assert [chunk.text for chunk in chunks] == ["aaaa\nbbbb\n", "cccc"]


def test_line_exactly_at_budget_is_not_split() -> None:
    chunks = split_text_into_chunks("abcd.efghij", max_bytes=11)
    assert [chunk.text for chunk in chunks] == ["abcd.efghij"]


def test_line_one_byte_over_budget_is_split_at_punctuation() -> None:
    chunks = split_text_into_chunks("abcd.efghij", max_bytes=10)
    assert [chunk.text for chunk in chunks] == ["abcd.", "efghij"]


def test_budget_counts_utf8_bytes() -> None:
    # Each of these characters is three bytes in UTF-8.
    chunks = split_text_into_chunks("漢字。漢字", max_bytes=9)
    assert [chunk.text for chunk in chunks] == ["漢字。", "漢字"]
    assert [chunk.byte_length for chunk in chunks] == [9, 6]


def test_brackets_are_split_points_for_long_lines() -> None:
    chunks = split_text_into_chunks("彼は『猫』と言った", max_bytes=12)
    assert join_chunks(chunks) == "彼は『猫』と言った"
    assert all(chunk.byte_length <= 12 for chunk in chunks)


def test_unsplittable_token_becomes_oversized_chunk() -> None:
    chunks = split_text_into_chunks("x" * 20 + "\nok", max_bytes=10)
    assert [chunk.text for chunk in chunks] == ["x" * 20, "\nok"]
    assert chunks[0].oversized
    assert not chunks[1].oversized


def test_invalid_budget_is_rejected() -> None:
    with pytest.raises(ValueError):
        split_text_into_chunks("abc", max_bytes=0)


def test_line_at_budget_between_other_lines_stays_whole() -> None:
    chunks = split_text_into_chunks("x\nabcd.efghij\ny", max_bytes=11)
    assert [chunk.text for chunk in chunks] == ["x\n", "abcd.efghij", "\ny"]
    assert not any(chunk.oversized for chunk in chunks)


def test_line_terminator_does_not_count_toward_line_size() -> None:
    chunks = split_text_into_chunks("abcd.efghij\r\n", max_bytes=11)
    assert [chunk.text for chunk in chunks] == ["abcd.efghij", "\r\n"]
