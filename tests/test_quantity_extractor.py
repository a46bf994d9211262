import pytest

from barback.quantity_extractor import extract_quantity_from_text


@pytest.mark.parametrize(
    "text,expected",
    [
        ("twelve bottles", 12),
        ("I count 8 cases", 8),
        ("about seven cases", 7),
        ("Twenty kegs", 20),
        ("nineteen bottles", 19),
        ("zero left", 0),
        ("150 limes", 150),
        ("I count 12 bottles", 12),
        ("nothing here", 0),
    ],
)
def test_extracts_quantity(text, expected):
    assert extract_quantity_from_text(text) == expected


def test_digit_literal_beats_number_word():
    assert extract_quantity_from_text("seven cases, actually 9") == 9


def test_first_number_word_in_reading_order_wins():
    assert extract_quantity_from_text("three kegs and two cases") == 3
    assert extract_quantity_from_text("eleven or one") == 11


def test_words_are_matched_as_whole_tokens():
    assert extract_quantity_from_text("someone counted") == 0
    assert extract_quantity_from_text("often") == 0


def test_digits_inside_words_are_not_standalone():
    assert extract_quantity_from_text("sku abc123") == 0


@pytest.mark.parametrize("text", [None, "", "no count here"])
def test_missing_quantity_is_zero(text):
    assert extract_quantity_from_text(text) == 0


def test_oversized_digit_literal_is_not_an_error():
    assert extract_quantity_from_text("count " + "9" * 5000 + " bottles") == 0


def test_oversized_digit_literal_falls_back_to_number_words():
    assert extract_quantity_from_text("9" * 5000 + " or three") == 3
