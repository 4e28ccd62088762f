"""Election of the best candidate per class and golden sub-region refinement."""

from collections.abc import Sequence
from dataclasses import dataclass

from .config import GOLDEN_STEP, GOLDEN_WINDOW_COUNT
from .interfaces import RefinementStrategy, ScoringHeuristic
from .logging_utils import get_logger
from .models import RegionCandidate, RegionKind, Refinement, Window, WindowMeasurement
from .scoring import summarize_windows, voicing_density

logger = get_logger(__name__)


@dataclass(frozen=True)
class Election:
    """Outcome of electing one candidate class.

    ``candidates`` is the class list with the elected entry possibly replaced
    by its refined copy; ``index`` points into it, or is None when the list
    was empty.
    """

    candidates: tuple[RegionCandidate, ...]
    index: int | None

    @property
    def elected(self) -> RegionCandidate | None:
        return None if self.index is None else self.candidates[self.index]


class GoldenSubRegionRefiner(RefinementStrategy):
    """
    Sliding fixed-length sub-window search.

    Every run of ``window_count`` consecutive analysis windows inside the
    candidate is scored with the candidate's own heuristic, starting every
    ``step`` windows. The best sub-window wins only if it scores strictly
    higher than the whole candidate; ties keep the earliest sub-window.
    """

    def __init__(self, window_count: int = GOLDEN_WINDOW_COUNT, step: int = GOLDEN_STEP) -> None:
        if window_count < 1 or step < 1:
            raise ValueError("Sub-window length and step must be at least one window")
        self.window_count = window_count
        self.step = step

    def refine(
        self,
        candidate: RegionCandidate,
        windows: Sequence[WindowMeasurement],
        heuristic: ScoringHeuristic,
    ) -> Refinement | None:
        if candidate.window_count <= self.window_count:
            return None

        first = candidate.first_index
        last = first + candidate.window_count
        best_score = candidate.score
        best_start: int | None = None

        for start in range(first, last - self.window_count + 1, self.step):
            score = heuristic.score(windows[start : start + self.window_count])
            if score > best_score:
                best_score = score
                best_start = start

        if best_start is None:
            return None

        run = windows[best_start : best_start + self.window_count]
        return Refinement(
            window=Window(
                start=run[0].window.start,
                duration=sum(w.window.duration for w in run),
            ),
            score=best_score,
            metrics=summarize_windows(run),
            voicing_density=(
                voicing_density(run) if candidate.kind is RegionKind.SPEECH else 0.0
            ),
        )


class RegionElector:
    """Selects the single best candidate of a class and optionally refines it."""

    def __init__(self, refinement_strategy: RefinementStrategy | None = None) -> None:
        """
        Initialize the elector.

        Args:
            refinement_strategy: Sub-region search, or None to disable refinement
        """
        self.refinement_strategy = refinement_strategy

    @staticmethod
    def select(candidates: Sequence[RegionCandidate]) -> int | None:
        """
        Pick the highest-scoring candidate.

        Args:
            candidates: Candidates in scan order

        Returns:
            Index of the winner (earliest start on ties), or None if empty
        """
        best: int | None = None
        for index, candidate in enumerate(candidates):
            if best is None:
                best = index
                continue
            current = candidates[best]
            if candidate.score > current.score or (
                candidate.score == current.score
                and candidate.window.start < current.window.start
            ):
                best = index
        return best

    def elect(
        self,
        candidates: Sequence[RegionCandidate],
        windows: Sequence[WindowMeasurement],
        heuristic: ScoringHeuristic,
    ) -> Election:
        """
        Elect and refine the best candidate of one class.

        Args:
            candidates: Candidates in scan order
            windows: The pre-scan the candidates were built from
            heuristic: Scoring heuristic used for the candidates

        Returns:
            Election with the (possibly refined) candidate list and winner index
        """
        candidates = tuple(candidates)
        index = self.select(candidates)
        if index is None:
            logger.debug(f"No {heuristic.kind.value} candidates to elect")
            return Election(candidates=candidates, index=None)

        elected = candidates[index]
        if self.refinement_strategy is not None:
            refinement = self.refinement_strategy.refine(elected, windows, heuristic)
            if refinement is not None:
                logger.debug(
                    f"Refined {heuristic.kind.value} candidate at {elected.window.start:.2f}s "
                    f"to {refinement.window.duration:.2f}s at {refinement.window.start:.2f}s "
                    f"(score {elected.score:.3f} -> {refinement.score:.3f})"
                )
                elected = elected.with_refinement(refinement)
                candidates = candidates[:index] + (elected,) + candidates[index + 1 :]

        logger.debug(
            f"Elected {heuristic.kind.value} candidate {index} of {len(candidates)} "
            f"at {elected.effective_window.start:.2f}s"
        )
        return Election(candidates=candidates, index=index)
