"""
Token estimation for context budgets.

Budgets use a fixed character heuristic (about 4 characters per token,
rounded up) so that the same text always costs the same, whatever model
sits behind the completion backend.
"""

import math
from dataclasses import dataclass


CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """ceil(len(text) / 4); empty text costs nothing."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass
class TokenBudget:
    """
    Remaining tokens for one assembly call.

    Checked before each fragment is fetched, so the last fragment added
    may take the total past the limit.
    """
    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def spend(self, text: str) -> int:
        cost = estimate_tokens(text)
        self.remaining -= cost
        return cost
