import re
import unicodedata
from functools import lru_cache

# Words shorter than this are dropped from word searches
MIN_WORD_LENGTH = 2

# LIKE wildcards that must be escaped in user queries
_LIKE_SPECIAL = re.compile(r"([\\%_])")


@lru_cache(maxsize=4096)
def remove_accents(text: str) -> str:
    """Remove accents from text.

    Example: "Liberté" -> "Liberte"
    """
    # Normalize to NFD (decomposes accented characters)
    normalized = unicodedata.normalize("NFD", text)
    # Remove combining diacritical marks
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn")


@lru_cache(maxsize=4096)
def fold_text(text: str) -> str:
    """Fold text for case- and diacritic-insensitive comparison.

    - Converts to lowercase
    - Removes accents
    - Normalizes whitespace

    Example: "  Place   Liberté " -> "place liberte"
    """
    return " ".join(remove_accents(text.lower()).split())


def split_query_words(query: str) -> list[str]:
    """Split a free-text query into distinct searchable words.

    Words are folded, and words shorter than MIN_WORD_LENGTH are dropped.
    Order of first appearance is preserved.

    Example: "Gare de l'Est à Paris" -> ["gare", "de", "l'est", "paris"]
    """
    words: list[str] = []
    for word in fold_text(query).split():
        if len(word) >= MIN_WORD_LENGTH and word not in words:
            words.append(word)
    return words


def names_equal(left: str, right: str) -> bool:
    """Compare two stop names ignoring case and whitespace differences."""
    return " ".join(left.lower().split()) == " ".join(right.lower().split())


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text is matched literally (ESCAPE '\\')."""
    return _LIKE_SPECIAL.sub(r"\\\1", text)
