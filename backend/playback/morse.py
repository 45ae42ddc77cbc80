"""
International Morse code table and display helpers.

Patterns use '.' for dit and '-' for dah.
"""

from __future__ import annotations

from typing import Final

DIT: Final[str] = "."
DAH: Final[str] = "-"

MORSE_CODE: Final[dict[str, str]] = {
    "A": ".-", "B": "-...", "C": "-.-.", "D": "-..", "E": ".", "F": "..-.",
    "G": "--.", "H": "....", "I": "..", "J": ".---", "K": "-.-", "L": ".-..",
    "M": "--", "N": "-.", "O": "---", "P": ".--.", "Q": "--.-", "R": ".-.",
    "S": "...", "T": "-", "U": "..-", "V": "...-", "W": ".--", "X": "-..-",
    "Y": "-.--", "Z": "--..",
    "0": "-----", "1": ".----", "2": "..---", "3": "...--", "4": "....-",
    "5": ".....", "6": "-....", "7": "--...", "8": "---..", "9": "----.",
    "/": "-..-.", ".": ".-.-.-", ",": "--..--", "?": "..--..", "=": "-...-",
}


def pattern_for(char: str) -> str | None:
    """Pattern for one character (case-insensitive); None if unsupported."""
    return MORSE_CODE.get(char.upper())


def supported_characters(text: str) -> list[str]:
    """Upper-cased characters of text that have a code, in order."""
    return [c for c in text.upper() if c in MORSE_CODE]


def callsign_to_morse(callsign: str) -> str:
    """Space-separated patterns, e.g. 'W1AW' -> '.-- .---- .- .--'."""
    return " ".join(MORSE_CODE[c] for c in supported_characters(callsign))
