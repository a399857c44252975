import pytest

from textlife import Glyph, region_from_lines, region_to_lines, scan_row


def cells(text):
    return [(ch, Glyph(ch)) for ch in text]


def test_scan_row_keeps_glyph_objects_at_their_columns():
    a, b = Glyph("a", 3), Glyph("b", 4)
    row = scan_row([("a", a), (" ", Glyph(" ")), ("b", b)])
    assert row[0] is None
    assert row[1] is a
    assert row[2] is None
    assert row[3] is b
    assert len(row) == 4


def test_scan_row_drops_trailing_blanks():
    row = scan_row(cells("x   "))
    assert len(row) == 2


def test_whitespace_only_line_is_just_the_sentinel():
    assert scan_row(cells("  \t  ")) == [None]
    assert scan_row([]) == [None]


def test_tab_expands_to_next_tab_stop():
    row = scan_row(cells("a\tb"), tab_width=4)
    # a at column 0, tab fills columns 1-3, b at column 4
    assert len(row) == 6
    assert row[1].char == "a"
    assert row[2:5] == [None, None, None]
    assert row[5].char == "b"


def test_tab_at_a_tab_stop_is_a_full_tab():
    row = scan_row(cells("\tb"), tab_width=4)
    assert row[5].char == "b"


def test_start_column_shifts_tab_stops_only():
    row = scan_row(cells("\tx"), start_col=2, tab_width=4)
    # tab at display column 2 reaches the stop at 4: two blanks
    assert row == [None, None, None, row[3]]
    assert row[3].char == "x"


def test_invalid_tab_width_is_rejected():
    with pytest.raises(ValueError):
        scan_row(cells("a\tb"), tab_width=0)


def test_region_round_trips_through_lines():
    lines = ["hello", "", "  w o"]
    assert region_to_lines(region_from_lines(lines)) == lines


def test_region_from_lines_expands_tabs_to_spaces():
    assert region_to_lines(region_from_lines(["\tx"], tab_width=3)) == ["   x"]
