"""
Decision factor assembly.

Turns the upstream analysis payloads into the DecisionFactors structure
the decision function consumes. Every optional field has a default, and
inputs are deep-copied so neither side can mutate the other's data.
"""

import copy
from typing import Any, Mapping, Optional

from .models import DecisionFactors, MarketConditions
from .noise import estimate_noise

DEFAULT_CONDITION_SCORE = 50.0


def _nested(source: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(source, Mapping):
            return None
        source = source.get(key)
    return source


def _condition_score(value: Any) -> float:
    """Clamp a 0-100 condition score, falling back to the neutral default."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONDITION_SCORE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONDITION_SCORE
    if score != score:  # NaN
        return DEFAULT_CONDITION_SCORE
    return max(0.0, min(100.0, score))


def build_factors(
    detailed_results: Optional[Mapping[str, Any]],
    enhanced_analysis: Optional[Mapping[str, Any]],
    technical_indicators: Optional[Mapping[str, Any]] = None,
) -> DecisionFactors:
    """
    Build decision factors from upstream analysis.

    Args:
        detailed_results: Indicator name -> pattern result (used for noise)
        enhanced_analysis: Payload with ``microPatterns``, ``visualAnalysis``
            and ``timing``
        technical_indicators: Overrides what is passed through as
            ``technical_indicators``; defaults to ``detailed_results``

    Returns:
        A new DecisionFactors instance
    """
    enhanced = enhanced_analysis if isinstance(enhanced_analysis, Mapping) else {}
    detailed = detailed_results if isinstance(detailed_results, Mapping) else {}

    micro_patterns = enhanced.get("microPatterns") or []
    visual_analysis = enhanced.get("visualAnalysis")
    if not isinstance(visual_analysis, Mapping):
        visual_analysis = {}
    timing = enhanced.get("timing")
    if not isinstance(timing, Mapping):
        timing = {}

    conditions = MarketConditions(
        volatility=_condition_score(_nested(visual_analysis, "priceAction", "volatility")),
        noise=estimate_noise(detailed),
        trend_strength=_condition_score(_nested(visual_analysis, "trendStrength")),
    )

    technical = technical_indicators if technical_indicators is not None else detailed

    return DecisionFactors(
        micro_patterns=list(copy.deepcopy(micro_patterns)),
        visual_analysis=dict(copy.deepcopy(visual_analysis)),
        market_conditions=conditions,
        timing_analysis=dict(copy.deepcopy(timing)),
        technical_indicators=dict(copy.deepcopy(technical)),
    )
