"""Recording coaching tips derived from audio measurements."""

from .models import RecordingTip, TipExclusion
from .tip_engine import (
    TIP_EXCLUSIONS,
    TIP_RULES,
    apply_exclusions,
    generate_recording_tips,
    wrap_text,
)

__all__ = [
    "RecordingTip",
    "TipExclusion",
    "TIP_EXCLUSIONS",
    "TIP_RULES",
    "apply_exclusions",
    "generate_recording_tips",
    "wrap_text",
]
