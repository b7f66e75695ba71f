"""Usage and cost accounting from normalized unit counts."""

import math

from .constants import CHARS_PER_TOKEN
from .provider_registry import ProviderDescriptor
from .schemas import Usage

COST_PRECISION = 6


def compute_cost(input_units: int, output_units: int, descriptor: ProviderDescriptor) -> float:
    """Symmetric per-1K pricing: input and output units share ``cost_per_unit``."""
    input_cost = (input_units / 1000) * descriptor.cost_per_unit
    output_cost = (output_units / 1000) * descriptor.cost_per_unit
    return round(input_cost + output_cost, COST_PRECISION)


def build_usage(input_units: int, output_units: int, descriptor: ProviderDescriptor) -> Usage:
    return Usage(
        input_units=input_units,
        output_units=output_units,
        cost=compute_cost(input_units, output_units, descriptor),
    )


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_cost(
    prompt: str, descriptor: ProviderDescriptor, expected_output_length: int = 500
) -> dict[str, object]:
    """Rough pre-flight estimate at ~4 characters per token."""
    input_tokens = estimate_tokens(prompt)
    output_tokens = math.ceil(expected_output_length / CHARS_PER_TOKEN)
    input_cost = round((input_tokens / 1000) * descriptor.cost_per_unit, COST_PRECISION)
    output_cost = round((output_tokens / 1000) * descriptor.cost_per_unit, COST_PRECISION)
    return {
        "providerId": descriptor.id,
        "inputTokens": input_tokens,
        "outputTokens": output_tokens,
        "totalTokens": input_tokens + output_tokens,
        "estimatedCost": compute_cost(input_tokens, output_tokens, descriptor),
        "costBreakdown": {"input": input_cost, "output": output_cost},
    }
