"""
Scenario - What a simulation run is asked to do.

Scenario input parameters arrive as a free-form key/value map. They are
parsed into ScenarioParameters, which names every field the engine reads
for each scenario type and keeps anything else in ``extras``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
import json

from ..digital_twin.twin_state import to_float
from ..errors import OptimizationConfigurationError, ScenarioConfigurationError
from ..optimization.genetic_algorithm import parse_goals
from .scenario_events import CapacityAction, RiskEvent, WhatIfCondition


class ScenarioType(str, Enum):
    """Simulation intents; each maps to one strategy."""
    STANDARD = "standard"
    WHAT_IF = "what_if"
    OPTIMIZATION = "optimization"
    RISK_ASSESSMENT = "risk_assessment"
    CAPACITY_PLANNING = "capacity_planning"
    PROCESS_IMPROVEMENT = "process_improvement"


def _to_int(value: Any) -> Optional[int]:
    number = to_float(value, None)
    return None if number is None else int(number)


def _event_list(raw: Any, parser, key: str) -> Tuple:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ScenarioConfigurationError(f"'{key}' must be a list")
    events = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise ScenarioConfigurationError(f"Entries of '{key}' must be objects")
        events.append(parser(item))
    return tuple(events)


@dataclass(frozen=True)
class ScenarioParameters:
    """Typed view of scenario input parameters merged with run overrides."""
    # Step updater overrides (any scenario type)
    efficiency_modifier: Optional[float] = None
    capacity_modifier: Optional[float] = None
    quality_target: Optional[float] = None
    resource_optimization: Optional[float] = None
    duration_hours: Optional[float] = None

    # what_if
    conditions: Tuple[WhatIfCondition, ...] = ()

    # risk_assessment
    risk_scenarios: Tuple[RiskEvent, ...] = ()

    # capacity_planning
    capacity_scenarios: Tuple[CapacityAction, ...] = ()

    # optimization
    optimization_goals: frozenset = frozenset()
    optimization_method: str = "genetic_algorithm"
    population_size: Optional[int] = None
    iterations: Optional[int] = None
    mutation_rate: Optional[float] = None

    extras: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    KNOWN_KEYS = (
        "efficiency_modifier", "capacity_modifier", "quality_target",
        "resource_optimization", "duration_hours", "conditions",
        "risk_scenarios", "capacity_scenarios", "optimization_goals",
        "optimization_method", "population_size", "iterations", "mutation_rate",
    )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ScenarioParameters':
        """
        Parse a free-form parameter map.

        Raises:
            ScenarioConfigurationError: malformed event lists or unknown
                event/goal types
        """
        data = dict(data or {})
        try:
            goals = parse_goals(data.get("optimization_goals"))
        except OptimizationConfigurationError as e:
            raise ScenarioConfigurationError(str(e)) from e

        return cls(
            efficiency_modifier=to_float(data.get("efficiency_modifier"), None),
            capacity_modifier=to_float(data.get("capacity_modifier"), None),
            quality_target=to_float(data.get("quality_target"), None),
            resource_optimization=to_float(data.get("resource_optimization"), None),
            duration_hours=to_float(data.get("duration_hours"), None),
            conditions=_event_list(data.get("conditions"), WhatIfCondition.from_dict, "conditions"),
            risk_scenarios=_event_list(data.get("risk_scenarios"), RiskEvent.from_dict, "risk_scenarios"),
            capacity_scenarios=_event_list(
                data.get("capacity_scenarios"), CapacityAction.from_dict, "capacity_scenarios"
            ),
            optimization_goals=goals,
            optimization_method=str(data.get("optimization_method") or "genetic_algorithm"),
            population_size=_to_int(data.get("population_size")),
            iterations=_to_int(data.get("iterations")),
            mutation_rate=to_float(data.get("mutation_rate"), None),
            extras={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extras)
        result.update({
            "efficiency_modifier": self.efficiency_modifier,
            "capacity_modifier": self.capacity_modifier,
            "quality_target": self.quality_target,
            "resource_optimization": self.resource_optimization,
            "duration_hours": self.duration_hours,
            "conditions": [c.to_dict() for c in self.conditions],
            "risk_scenarios": [r.to_dict() for r in self.risk_scenarios],
            "capacity_scenarios": [a.to_dict() for a in self.capacity_scenarios],
            "optimization_goals": {g.value: True for g in sorted(self.optimization_goals, key=lambda g: g.value)},
            "optimization_method": self.optimization_method,
            "population_size": self.population_size,
            "iterations": self.iterations,
            "mutation_rate": self.mutation_rate,
        })
        return {k: v for k, v in result.items() if v is not None}

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> 'ScenarioParameters':
        """Run-time overrides win over scenario parameters, key by key."""
        if not overrides:
            return self
        combined = self.to_dict()
        combined.update(overrides)
        return ScenarioParameters.from_dict(combined)

    def with_modifiers(self, **values: float) -> 'ScenarioParameters':
        """Copy with updated step-updater overrides (e.g. GA best parameters)."""
        allowed = {
            k: v for k, v in values.items()
            if k in ("efficiency_modifier", "capacity_modifier", "quality_target", "resource_optimization")
        }
        return replace(self, **allowed)


@dataclass(frozen=True)
class Scenario:
    """A named simulation intent bound to one or more twins."""
    scenario_id: str
    name: str
    scenario_type: ScenarioType
    target_twins: Tuple[str, ...]
    input_parameters: ScenarioParameters
    duration_hours: float = 1.0
    description: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Scenario':
        """
        Build a scenario from a caller record; target_twins and
        input_parameters may be JSON-encoded.

        Raises:
            ScenarioConfigurationError: missing id, unknown type, bad duration
        """
        scenario_id = record.get("id", record.get("scenario_id"))
        if scenario_id is None or scenario_id == "":
            raise ScenarioConfigurationError("Scenario record has no id")

        raw_type = record.get("scenario_type") or ScenarioType.STANDARD.value
        try:
            scenario_type = ScenarioType(raw_type)
        except ValueError:
            raise ScenarioConfigurationError(f"Unknown scenario type: {raw_type!r}") from None

        targets = record.get("target_twins") or []
        if isinstance(targets, str):
            try:
                targets = json.loads(targets)
            except json.JSONDecodeError as e:
                raise ScenarioConfigurationError(f"Invalid target_twins JSON: {e}") from e
        if not isinstance(targets, list):
            targets = [targets]

        params = record.get("input_parameters") or {}
        if isinstance(params, str):
            try:
                params = json.loads(params)
            except json.JSONDecodeError as e:
                raise ScenarioConfigurationError(f"Invalid input_parameters JSON: {e}") from e

        duration = to_float(record.get("duration_hours"), None)
        if duration is None:
            duration = 1.0
        if duration < 0:
            raise ScenarioConfigurationError(f"Negative scenario duration: {duration}")

        return cls(
            scenario_id=str(scenario_id),
            name=str(record.get("scenario_name", record.get("name")) or ""),
            scenario_type=scenario_type,
            target_twins=tuple(str(t) for t in targets),
            input_parameters=ScenarioParameters.from_dict(params),
            duration_hours=duration,
            description=str(record.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.scenario_id,
            "scenario_name": self.name,
            "scenario_type": self.scenario_type.value,
            "target_twins": list(self.target_twins),
            "input_parameters": self.input_parameters.to_dict(),
            "duration_hours": self.duration_hours,
            "description": self.description,
        }
