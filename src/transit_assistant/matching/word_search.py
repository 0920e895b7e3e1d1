"""Multi-word stop search with per-stop match scores."""

from typing import TYPE_CHECKING

from transit_assistant.matching.normalizers import split_query_words
from transit_assistant.models.gtfs import ScoredStop

if TYPE_CHECKING:
    from transit_assistant.data.backend import TransitBackend

# Candidates fetched per query word
PER_WORD_LIMIT = 100

DEFAULT_LIMIT = 20


async def search_stops_by_words(
    backend: "TransitBackend",
    query: str,
    limit: int = DEFAULT_LIMIT,
) -> list[ScoredStop]:
    """Search stops whose names contain any word of the query.

    Each stop scores one point per distinct query word found in its name
    (case- and accent-insensitive). Results are ordered by score descending,
    then stop name, then stop ID.

    Example:
        "Gare Centrale" -> "Gare Centrale" scores 2, "Gare du Nord" scores 1.

    Args:
        backend: Open transit backend.
        query: Free-text stop name.
        limit: Maximum number of results.

    Returns:
        Ranked list of ScoredStop. Empty when no usable word remains.
    """
    words = split_query_words(query)
    if not words:
        return []

    scored: dict[str, ScoredStop] = {}
    for word in words:
        for stop in await backend.get_stops(name=word, limit=PER_WORD_LIMIT):
            entry = scored.get(stop.stop_id)
            if entry is None:
                entry = ScoredStop(**stop.model_dump())
                scored[stop.stop_id] = entry
            entry.match_score += 1
            entry.matched_words.append(word)

    ranked = sorted(scored.values(), key=lambda s: (-s.match_score, s.stop_name, s.stop_id))
    return ranked[:limit]
