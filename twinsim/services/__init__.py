"""
TwinSim Services
"""

from .errors import (
    SimulationError,
    TwinConfigurationError,
    TwinNotFoundError,
    ScenarioConfigurationError,
    OptimizationConfigurationError,
)

__all__ = [
    'SimulationError',
    'TwinConfigurationError',
    'TwinNotFoundError',
    'ScenarioConfigurationError',
    'OptimizationConfigurationError',
]
