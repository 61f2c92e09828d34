"""Per-run state passed explicitly through the pipeline."""

from dataclasses import dataclass, field

from ..models import RunSummary
from .budget import BudgetTracker


@dataclass
class RunContext:
    """Budget and summary owned by one run."""

    budget: BudgetTracker
    summary: RunSummary = field(default_factory=RunSummary)

    @classmethod
    def with_ceiling(cls, ceiling: int, held: int = 0) -> "RunContext":
        return cls(budget=BudgetTracker(ceiling, held=held))

    def charge(self, n: int = 1) -> None:
        """Consume budget and mirror the total into the summary."""
        self.budget.consume(n)
        self.summary.total_operations = self.budget.consumed

    def stop_early(self) -> None:
        self.summary.stopped_early = True
