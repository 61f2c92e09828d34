"""Operation budget accounting for a single run."""

import logging

from ..errors import BudgetExceededError

logger = logging.getLogger(__name__)


class BudgetTracker:
    """
    Counts external operations against a fixed ceiling.

    Units put on hold are invisible to reserve() and consume() until
    release() hands them back, so a late step can always be paid for.
    """

    def __init__(self, ceiling: int, held: int = 0) -> None:
        if ceiling < 0:
            raise ValueError("ceiling must be non-negative")
        if held < 0 or held > ceiling:
            raise ValueError("held must be between 0 and the ceiling")
        self.ceiling = ceiling
        self.held = held
        self.consumed = 0

    def reserve(self, n: int = 1) -> bool:
        """Whether n more operations fit under the ceiling."""
        return self.consumed + self.held + n <= self.ceiling

    def consume(self, n: int = 1) -> None:
        """Record operations actually issued."""
        if self.consumed + self.held + n > self.ceiling:
            raise BudgetExceededError(
                f"Consuming {n} would exceed the ceiling "
                f"({self.consumed}+{self.held} held/{self.ceiling})"
            )
        self.consumed += n
        logger.debug("Budget: %d/%d used", self.consumed, self.ceiling)

    def release(self) -> int:
        """Make held units available again. Returns how many were held."""
        released, self.held = self.held, 0
        return released

    def remaining(self) -> int:
        """Operations still available."""
        return self.ceiling - self.consumed - self.held

    def __repr__(self) -> str:
        return f"BudgetTracker(consumed={self.consumed}, held={self.held}, ceiling={self.ceiling})"
