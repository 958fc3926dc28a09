"""
Scenario Builder - Ready-made scenarios for the common requests.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union
import logging
import uuid

from ..digital_twin.twin_state import DigitalTwin
from .scenario import Scenario, ScenarioParameters, ScenarioType

logger = logging.getLogger(__name__)


def _twin_id(twin: Union[DigitalTwin, Mapping[str, Any], str, int]) -> str:
    if isinstance(twin, DigitalTwin):
        return twin.twin_id
    if isinstance(twin, Mapping):
        return str(twin.get("id", twin.get("twin_id")))
    return str(twin)


def build_optimization_scenario(
    twin: Union[DigitalTwin, Mapping[str, Any], str, int],
    goals,
    scenario_id: Optional[str] = None,
) -> Scenario:
    """
    GA optimization over one twin: 100 generations of 50 individuals,
    mutation rate 0.1, followed by a 2 hour simulation.
    """
    twin_id = _twin_id(twin)
    scenario = Scenario(
        scenario_id=scenario_id or str(uuid.uuid4()),
        name=f"Optimization - twin {twin_id}",
        scenario_type=ScenarioType.OPTIMIZATION,
        target_twins=(twin_id,),
        input_parameters=ScenarioParameters.from_dict({
            "optimization_goals": goals,
            "optimization_method": "genetic_algorithm",
            "iterations": 100,
            "population_size": 50,
            "mutation_rate": 0.1,
        }),
        duration_hours=2.0,
        description="Genetic algorithm search for the best run parameters",
    )
    logger.info(f"Built optimization scenario {scenario.scenario_id} for twin {twin_id}")
    return scenario


def build_what_if_scenario(
    twin_ids: Iterable[Union[DigitalTwin, Mapping[str, Any], str, int]],
    conditions: List[Mapping[str, Any]],
    scenario_id: Optional[str] = None,
) -> Scenario:
    """One hour what-if run over the given twins."""
    targets = tuple(_twin_id(t) for t in twin_ids)
    scenario = Scenario(
        scenario_id=scenario_id or str(uuid.uuid4()),
        name=f"What-if analysis ({len(targets)} twins)",
        scenario_type=ScenarioType.WHAT_IF,
        target_twins=targets,
        input_parameters=ScenarioParameters.from_dict({"conditions": list(conditions)}),
        duration_hours=1.0,
        description="What-if conditions applied at their trigger hours",
    )
    logger.info(f"Built what-if scenario {scenario.scenario_id} with {len(conditions)} conditions")
    return scenario
