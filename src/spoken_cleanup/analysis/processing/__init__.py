"""Adaptive filter chain configuration and filter graph rendering."""

from .adaptive_configurator import AdaptiveConfigurator, DerivationRule, configure
from .filter_graph import build_filter_spec
from .models import FilterChainConfig, FilterStage, GateDetection

__all__ = [
    "AdaptiveConfigurator",
    "DerivationRule",
    "FilterChainConfig",
    "FilterStage",
    "GateDetection",
    "build_filter_spec",
    "configure",
]
