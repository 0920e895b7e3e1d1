"""Voice-driven transit assistant: LLM tool-calling over a GTFS feed."""

__version__ = "0.1.0"
