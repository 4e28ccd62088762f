"""Abstract interfaces for pluggable analysis strategies."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import RegionCandidate, Refinement, RegionKind, WindowMeasurement


class ScoringHeuristic(ABC):
    """Composite score used to rank candidate windows of one class."""

    kind: RegionKind

    @abstractmethod
    def qualifies(self, measurement: WindowMeasurement) -> bool:
        """
        Decide whether a single analysis window belongs to this class.

        Args:
            measurement: One window of the pre-scan

        Returns:
            True if the window qualifies
        """
        pass

    @abstractmethod
    def score(self, windows: Sequence[WindowMeasurement]) -> float:
        """
        Score a run of consecutive analysis windows.

        Args:
            windows: Consecutive windows forming a candidate or sub-window

        Returns:
            Composite score, higher is more representative
        """
        pass


class RefinementStrategy(ABC):
    """Search for a golden sub-region inside an elected candidate."""

    @abstractmethod
    def refine(
        self,
        candidate: RegionCandidate,
        windows: Sequence[WindowMeasurement],
        heuristic: ScoringHeuristic,
    ) -> Refinement | None:
        """
        Find a strictly better-scoring sub-window of ``candidate``.

        Args:
            candidate: The elected candidate
            windows: The full pre-scan the candidate was built from
            heuristic: Scoring heuristic for the candidate's class

        Returns:
            The refinement, or None when no sub-window scores higher
        """
        pass
