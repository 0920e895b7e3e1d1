"""Token accounting and cost estimates."""

from dataclasses import dataclass

from transit_assistant.models.conversation import Usage

# USD per million tokens (input, output), keyed by model family
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-sonnet-4-5": (3.0, 15.0),
    "claude-haiku-4-5": (1.0, 5.0),
    "claude-opus-4-5": (5.0, 25.0),
}


@dataclass(frozen=True)
class TokenUsage:
    """Running token totals across the rounds of a conversation."""

    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, usage: Usage) -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + usage.input_tokens,
            output_tokens=self.output_tokens + usage.output_tokens,
        )

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def estimate_cost(model: str, usage: TokenUsage) -> float | None:
    """Estimated USD cost of the usage, or None for a model without known pricing.

    Model IDs carry a date suffix ("claude-sonnet-4-5-20250929"), so pricing
    is matched on the family prefix.
    """
    for family, (input_price, output_price) in MODEL_PRICING.items():
        if model.startswith(family):
            return (
                usage.input_tokens * input_price + usage.output_tokens * output_price
            ) / 1_000_000
    return None
