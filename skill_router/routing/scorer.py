"""
Length-ratio confidence scorer.

    base = min(len(trigger_words) / len(input_words), 1.0)
    +0.3 if the trigger is a substring of the input
    +0.2 if it also sits on word boundaries
    +0.1 if the input starts with it
    clamp to [0, 1]

Hyphens and whitespace are treated as the same separator, so
``"spec-forge"`` and ``"spec forge"`` score identically.
"""

import re

_SEPARATORS = re.compile(r"[-\s]+")


def normalize(text: str) -> str:
    """Lowercase, trim and collapse hyphen/whitespace runs to a single space."""
    return _SEPARATORS.sub(" ", text.lower()).strip()


def contains_phrase(text: str, phrase: str) -> bool:
    """Substring test on normalized text."""
    phrase = normalize(phrase)
    return bool(phrase) and phrase in normalize(text)


def at_word_boundary(text: str, phrase: str) -> bool:
    """True if ``phrase`` occurs in ``text`` not flanked by word characters."""
    phrase = normalize(phrase)
    if not phrase:
        return False
    pattern = r"(?<!\w)" + re.escape(phrase) + r"(?!\w)"
    return re.search(pattern, normalize(text)) is not None


def score(user_input: str, trigger: str) -> float:
    """Score how strongly ``trigger`` matches ``user_input``.

    Always returns a float in ``[0.0, 1.0]``; never raises.
    """
    text = normalize(user_input)
    phrase = normalize(trigger)

    input_words = text.split()
    trigger_words = phrase.split()
    input_len = max(len(input_words), 1)

    confidence = min(len(trigger_words) / input_len, 1.0)

    if phrase and phrase in text:
        confidence += 0.3

        if at_word_boundary(text, phrase):
            confidence += 0.2

        if text.startswith(phrase):
            confidence += 0.1

    return max(0.0, min(confidence, 1.0))


__all__ = ["normalize", "contains_phrase", "at_word_boundary", "score"]
