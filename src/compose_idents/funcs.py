"""String transformations behind the built-in functions."""

import hashlib
import re

_SEPARATORS = re.compile(r"[\W_]+")


def upper(text: str) -> str:
    return text.upper()


def lower(text: str) -> str:
    return text.lower()


def split_words(text: str) -> list[str]:
    """Split text into words for case conversion.

    Words break at non-alphanumeric characters, at a lowercase->uppercase
    transition, and before the last capital of an acronym that is followed
    by a lowercase letter (``HTTPServer`` -> ``HTTP``, ``Server``). Digits
    stay attached to the word they follow.
    """
    words = []
    for chunk in _SEPARATORS.split(text):
        if not chunk:
            continue
        start = 0
        mode = None  # case of the last cased character
        for i, ch in enumerate(chunk):
            if i > start:
                nxt = chunk[i + 1] if i + 1 < len(chunk) else ""
                if ch.isupper() and (mode == "lower" or (mode == "upper" and nxt.islower())):
                    words.append(chunk[start:i])
                    start = i
            if ch.islower():
                mode = "lower"
            elif ch.isupper():
                mode = "upper"
        words.append(chunk[start:])
    return words


def snake_case(text: str) -> str:
    return "_".join(word.lower() for word in split_words(text))


def pascal_case(text: str) -> str:
    return "".join(word[:1].upper() + word[1:].lower() for word in split_words(text))


def camel_case(text: str) -> str:
    words = split_words(text)
    if not words:
        return ""
    return words[0].lower() + "".join(
        word[:1].upper() + word[1:].lower() for word in words[1:]
    )


def normalize(text: str) -> str:
    """Turn arbitrary text into something usable as an identifier.

    Runs of characters that are neither alphanumeric nor ``_`` collapse into
    a single ``_``; such characters and underscores at the start or in the
    last position are dropped, a leading digit gets an ``_`` prefix, and an
    empty result becomes ``_``.

    >>> normalize("&'static str")
    'static_str'
    >>> normalize("Result< T, E >")
    'Result_T_E'
    """
    result: list[str] = []
    inserted_underscore = False
    last = len(text) - 1

    for i, ch in enumerate(text):
        strip = not result or i == last
        if ch.isalnum() or ch == "_":
            if not result and ch.isnumeric() and not inserted_underscore:
                result.append("_")
            elif ch == "_" and strip:
                continue
            result.append(ch)
            inserted_underscore = False
        elif not inserted_underscore and not strip:
            result.append("_")
            inserted_underscore = True

    if inserted_underscore:
        result.pop()
    return "".join(result) or "_"


def hash_text(text: str, seed: int) -> str:
    """Decimal digest of ``text`` salted with ``seed``."""
    digest = hashlib.blake2b(text.encode(), digest_size=8, key=str(seed).encode())
    return str(int.from_bytes(digest.digest(), "big"))


def concat(parts: list[str]) -> str:
    return "".join(parts)
