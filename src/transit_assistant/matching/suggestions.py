"""Fuzzy "did you mean" suggestions for stop names that matched nothing."""

from rapidfuzz import fuzz, process

from transit_assistant.matching.normalizers import fold_text

# Minimum WRatio score (0-100) for a name to be suggested
SUGGESTION_CUTOFF = 75.0

MAX_SUGGESTIONS = 3


def suggest_stop_names(
    query: str,
    names: list[str],
    limit: int = MAX_SUGGESTIONS,
    cutoff: float = SUGGESTION_CUTOFF,
) -> list[str]:
    """Return stop names close to the query, best first.

    Uses rapidfuzz WRatio on folded text so accents and case don't matter.
    Only used to enrich not-found errors; never changes stop resolution.
    """
    folded_query = fold_text(query)
    if not folded_query or not names:
        return []

    matches = process.extract(
        folded_query,
        names,
        scorer=fuzz.WRatio,
        processor=fold_text,
        limit=limit,
        score_cutoff=cutoff,
    )
    return [name for name, _score, _index in matches]
