"""
Simulation engine errors.

Configuration errors are raised before any simulation step executes.
Errors raised while stepping are never wrapped; they reach the caller as-is.
"""


class SimulationError(Exception):
    """Base class for simulation engine errors."""
    pass


class TwinConfigurationError(SimulationError):
    """A twin record is missing or malformed."""
    pass


class TwinNotFoundError(TwinConfigurationError):
    """A scenario references a twin the caller did not supply."""

    def __init__(self, twin_id):
        super().__init__(f"Digital twin not found: {twin_id}")
        self.twin_id = twin_id


class ScenarioConfigurationError(SimulationError):
    """A scenario record or one of its events is malformed."""
    pass


class OptimizationConfigurationError(SimulationError):
    """Genetic algorithm inputs cannot produce a meaningful search."""
    pass
