"""Token-overlap text similarity shared by every matching stage."""

MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> list[str]:
    """Split on whitespace and drop tokens of two characters or fewer."""
    return [token for token in text.split() if len(token) >= MIN_TOKEN_LENGTH]


def similarity(text1: str, text2: str) -> float:
    """
    Ratio of shared tokens between two strings.

    Counts the tokens of ``text1`` that also occur in ``text2`` and divides by
    the larger token count. Callers are expected to lower-case both inputs.

    Returns:
        Value in [0, 1]; 0 when either side is empty or has no usable tokens
    """
    if not text1 or not text2:
        return 0.0

    words1 = tokenize(text1)
    words2 = tokenize(text2)
    if not words1 or not words2:
        return 0.0

    vocabulary = set(words2)
    common = sum(1 for word in words1 if word in vocabulary)
    return common / max(len(words1), len(words2))
