import re

_EMPHASIS = re.compile(r"\*+")


def strip_emphasis(text: str) -> str:
    """Remove markdown bold/italic asterisks so replies read (and speak) cleanly."""
    return _EMPHASIS.sub("", text)


def chunk_words(text: str, size: int = 50) -> list[str]:
    """Split text into chunks of at most ``size`` whitespace-separated words."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    words = text.split()
    return [" ".join(words[i:i + size]) for i in range(0, len(words), size)]
