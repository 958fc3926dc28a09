"""
Simulation Service Layer - Scenario runs over digital twins.

Provides the discrete-time engine, per-scenario strategies, scenario
events and run analytics.
"""

from .engine import SimulationEngine
from .run_models import RunStatus, SimulationRun, StepContext, TimeStep, TwinSnapshot
from .scenario import Scenario, ScenarioParameters, ScenarioType
from .scenario_builder import build_optimization_scenario, build_what_if_scenario
from .scenario_events import (
    CapacityAction,
    CapacityActionType,
    ConditionType,
    RiskEvent,
    RiskType,
    TriggerSchedule,
    WhatIfCondition,
)
from .strategies import ScenarioStrategy, get_strategy
from .summary import (
    generate_capacity_analysis,
    generate_risk_assessment,
    generate_summary,
)

__all__ = [
    # Engine
    'SimulationEngine',
    'RunStatus',
    'SimulationRun',
    'StepContext',
    'TimeStep',
    'TwinSnapshot',
    # Scenarios
    'Scenario',
    'ScenarioParameters',
    'ScenarioType',
    'build_optimization_scenario',
    'build_what_if_scenario',
    # Events
    'CapacityAction',
    'CapacityActionType',
    'ConditionType',
    'RiskEvent',
    'RiskType',
    'TriggerSchedule',
    'WhatIfCondition',
    # Strategies
    'ScenarioStrategy',
    'get_strategy',
    # Analytics
    'generate_capacity_analysis',
    'generate_risk_assessment',
    'generate_summary',
]
