"""Prefix-completion entries for typeahead search."""

# No-break spaces and NEL join words rather than separate them.
_NON_BREAKING = frozenset("\u00a0\u2007\u202f\u0085")


def _is_separator(char: str) -> bool:
    return char.isspace() and char not in _NON_BREAKING


def tokenize(text: str) -> list[str]:
    """Produce one completion entry per word of the text.

    Each entry starts at a word and runs to the end of the text, so a
    completion suggester can match on any word, not only the first.
    For example "a bb c" gives ["a bb c", "bb c", "c"].

    Args:
        text: Value to build completions for.

    Returns:
        Suffixes of text starting at each word, in word order.
    """
    completions: list[str] = []
    in_whitespace = True

    for i, char in enumerate(text):
        if _is_separator(char):
            in_whitespace = True
        elif in_whitespace:
            in_whitespace = False
            completions.append(text[i:])

    return completions
