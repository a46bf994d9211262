"""Pull a count out of free text such as a voice transcript or OCR output."""

from __future__ import annotations

import re
from typing import Optional

NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
}

_INTEGER_LITERAL = re.compile(r"\b(\d+)\b")
_WORD = re.compile(r"[a-z]+")


def extract_quantity_from_text(text: Optional[str]) -> int:
    """Return the first quantity mentioned in `text`, or 0.

    A digit literal anywhere in the text wins over number words, unless it
    is too long to convert, in which case the word scan still runs. Number
    words are matched as whole tokens in reading order, so "nineteen" is 19
    and "someone" is not 1.
    """
    if not text:
        return 0
    lowered = text.lower()

    match = _INTEGER_LITERAL.search(lowered)
    if match:
        try:
            return int(match.group(1))
        except ValueError:
            # longer than the interpreter will convert; not a count
            pass

    for token in _WORD.findall(lowered):
        value = NUMBER_WORDS.get(token)
        if value is not None:
            return value
    return 0


__all__ = ["NUMBER_WORDS", "extract_quantity_from_text"]
