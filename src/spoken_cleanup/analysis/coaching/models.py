"""Data models for recording coaching tips."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RecordingTip:
    """A single piece of actionable recording advice."""

    priority: int  # 1-10, higher is more important
    rule_id: str  # e.g. "level_too_quiet"
    message: str  # one or two sentences

    def __post_init__(self) -> None:
        if not 1 <= self.priority <= 10:
            raise ValueError(f"Tip priority must be between 1 and 10, got {self.priority}")


@dataclass(frozen=True)
class TipExclusion:
    """
    Suppression of some tips when a more specific tip has fired.

    The tips in ``rule_ids`` are dropped when any rule in ``suppressed_by``
    fired, unless a rule in ``unless`` also fired.
    """

    rule_ids: frozenset[str]
    suppressed_by: frozenset[str]
    unless: frozenset[str] = frozenset()

    def suppresses(self, rule_id: str, fired: set[str]) -> bool:
        return (
            rule_id in self.rule_ids
            and not fired.isdisjoint(self.suppressed_by)
            and fired.isdisjoint(self.unless)
        )
