"""
Autonomous AI decision orchestrator.

Turns a stream of market-analysis snapshots into a single debounced,
risk-enriched trading decision and a human-readable notification.
"""

from .decision import DecisionOrchestrator, build_factors, estimate_noise
from .notifications import present

__all__ = [
    'DecisionOrchestrator',
    'build_factors',
    'estimate_noise',
    'present',
]

__version__ = '0.1.0'
