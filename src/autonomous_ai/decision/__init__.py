"""
Decision layer - gating, factor assembly and decision-cycle orchestration.

Components:
- estimate_noise: share of detected patterns with balanced buy/sell pressure
- build_factors: assembles DecisionFactors from upstream analysis
- DecisionOrchestrator: schedules, runs and enriches decision cycles
- Collaborator interfaces: ConfigurationSource, TradingRiskService
- Data classes: DecisionFactors, AutonomousDecision and friends
"""

from .factors import build_factors
from .interfaces import (
    ConfigurationSource,
    DecisionFunction,
    SettingsConfigurationSource,
    TradingRiskService,
)
from .models import (
    Action,
    AutonomousDecision,
    BacktestInput,
    DecisionError,
    DecisionFactors,
    DecisionTiming,
    InvalidDecisionError,
    MarketConditions,
    MarketGrade,
    OrchestratorState,
    ProfessionalAnalysis,
    RiskAssessmentRequest,
)
from .noise import estimate_noise
from .orchestrator import DecisionOrchestrator, passes_gate

__all__ = [
    # Orchestration
    'DecisionOrchestrator',
    'passes_gate',

    # Pure functions
    'build_factors',
    'estimate_noise',

    # Collaborators
    'ConfigurationSource',
    'SettingsConfigurationSource',
    'TradingRiskService',
    'DecisionFunction',

    # Data structures
    'Action',
    'MarketGrade',
    'AutonomousDecision',
    'DecisionTiming',
    'ProfessionalAnalysis',
    'DecisionFactors',
    'MarketConditions',
    'RiskAssessmentRequest',
    'BacktestInput',
    'OrchestratorState',

    # Errors
    'DecisionError',
    'InvalidDecisionError',
]
