"""
Market noise estimation.

Noise is the share of detected patterns whose buy and sell pressure are
nearly balanced, so it does not depend on how many indicators are
configured. With nothing detected the market is treated as moderately
noisy (50) rather than quiet.
"""

import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

NEUTRAL_NOISE = 50.0
CONFLICT_THRESHOLD = 0.3


def _score(result: Mapping[str, Any], key: str) -> float:
    try:
        return float(result.get(key) or 0)
    except (TypeError, ValueError):
        return 0.0


def estimate_noise(
    results: Optional[Mapping[str, Any]],
    conflict_threshold: float = CONFLICT_THRESHOLD,
) -> float:
    """
    Estimate market noise from pattern-detection results.

    Args:
        results: Indicator name -> pattern result with ``found`` and
            optional ``buyScore`` / ``sellScore``
        conflict_threshold: Max |buyScore - sellScore| counted as conflicting

    Returns:
        Noise score from 0 to 100
    """
    if not results:
        return NEUTRAL_NOISE

    found = [
        r for r in results.values()
        if isinstance(r, Mapping) and r.get("found")
    ]
    if not found:
        return NEUTRAL_NOISE

    conflicting = sum(
        1 for r in found
        if abs(_score(r, "buyScore") - _score(r, "sellScore")) < conflict_threshold
    )

    noise = min(100.0, conflicting / max(1, len(found)) * 100)
    logger.debug(f"Market noise: {conflicting}/{len(found)} conflicting -> {noise:.1f}")
    return noise
