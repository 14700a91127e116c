import math

import pytest

from file_converter.conversion.layout import (
    LINE_HEIGHT,
    MARGIN,
    PAGE_HEIGHT,
    TextCursor,
    fit_to_page,
    layout_lines,
)

LINES_PER_PAGE = math.floor((PAGE_HEIGHT - 2 * MARGIN) / LINE_HEIGHT)


def test_lines_per_page_constant():
    assert LINE_HEIGHT == pytest.approx(14.4)
    assert LINES_PER_PAGE == 51


def test_full_page_fits_on_one_page():
    pages = layout_lines("\n".join(f"line {i}" for i in range(LINES_PER_PAGE)))
    assert len(pages) == 1
    assert len(pages[0]) == 51


def test_one_more_line_starts_second_page():
    pages = layout_lines("\n".join(f"line {i}" for i in range(LINES_PER_PAGE + 1)))
    assert len(pages) == 2
    assert [len(p) for p in pages] == [51, 1]
    assert pages[1][0].y == PAGE_HEIGHT - MARGIN
    assert pages[1][0].text == "line 51"


def test_lines_are_drawn_at_margin_moving_down():
    pages = layout_lines("a\nb")
    first, second = pages[0]
    assert (first.x, first.y) == (MARGIN, PAGE_HEIGHT - MARGIN)
    assert second.y == pytest.approx(PAGE_HEIGHT - MARGIN - LINE_HEIGHT)


def test_empty_lines_render_as_space():
    pages = layout_lines("line1\n\nline3")
    assert [line.text for line in pages[0]] == ["line1", " ", "line3"]


def test_empty_text_still_produces_a_page():
    pages = layout_lines("")
    assert len(pages) == 1
    assert [line.text for line in pages[0]] == [" "]


def test_crlf_line_endings():
    pages = layout_lines("a\r\nb\rc")
    assert [line.text for line in pages[0]] == ["a", "b", "c"]


def test_long_lines_are_not_wrapped():
    long_line = "x" * 500
    pages = layout_lines(long_line)
    assert [line.text for line in pages[0]] == [long_line]


def test_cursor_never_places_below_bottom_margin():
    cursor = TextCursor()
    for _ in range(500):
        _, y = cursor.place()
        assert y >= MARGIN + LINE_HEIGHT
    assert cursor.page_count == math.ceil(500 / LINES_PER_PAGE)


def test_fit_scales_tall_image():
    w, h = fit_to_page(1000, 2000)
    assert w == pytest.approx(421)
    assert h == pytest.approx(842)


def test_fit_keeps_small_image_unscaled():
    assert fit_to_page(200, 100) == (200, 100)


def test_fit_scales_wide_image():
    w, h = fit_to_page(1190, 421)
    assert w == pytest.approx(595)
    assert h == pytest.approx(210.5)


def test_fit_without_metadata_uses_page_size():
    assert fit_to_page(None, None) == (595, 842)
