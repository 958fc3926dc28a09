"""
Scenario Events - Perturbations injected into a running simulation.

Three event families:
- What-if conditions: fire once at a trigger hour, optionally targeted
- Risk events: Bernoulli trial per risk per step, hit every twin
- Capacity actions: fire once at a start hour, reshape configuration

Events mutate the run's twin working copies in place and return a
description of what they did for the timeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Set, Tuple, TypeVar
import logging
import random

from ..digital_twin.twin_state import DigitalTwin, MIN_EFFICIENCY, MAX_EFFICIENCY, clamp, to_float
from ..errors import ScenarioConfigurationError

logger = logging.getLogger(__name__)


def _parse_enum(enum_cls, value: Any, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ScenarioConfigurationError(f"Unknown {what}: {value!r}") from None


def _target_ids(targets: Any) -> Optional[Tuple[str, ...]]:
    if targets is None:
        return None
    if isinstance(targets, (str, int)):
        targets = [targets]
    return tuple(str(t) for t in targets)


def _selected(twins: Dict[str, DigitalTwin], targets: Optional[Tuple[str, ...]]):
    for twin_id, twin in twins.items():
        if targets is not None and twin_id not in targets:
            continue
        yield twin_id, twin


# =============================================================================
# What-if conditions
# =============================================================================

class ConditionType(str, Enum):
    """What-if condition kinds."""
    EFFICIENCY_CHANGE = "efficiency_change"
    CAPACITY_CHANGE = "capacity_change"
    DOWNTIME_EVENT = "downtime_event"
    RESOURCE_CHANGE = "resource_change"


@dataclass(frozen=True)
class WhatIfCondition:
    """A change applied once the simulated clock reaches trigger_time."""
    condition_type: ConditionType
    trigger_time: Optional[float] = None  # hours from run start
    value: Optional[float] = None
    name: str = "Unknown"
    target_twins: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'WhatIfCondition':
        return cls(
            condition_type=_parse_enum(ConditionType, data.get("type"), "condition type"),
            trigger_time=to_float(data.get("trigger_time"), None),
            value=to_float(data.get("value"), None),
            name=str(data.get("name") or "Unknown"),
            target_twins=_target_ids(data.get("target_twins")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.condition_type.value,
            "trigger_time": self.trigger_time,
            "value": self.value,
            "name": self.name,
            "target_twins": list(self.target_twins) if self.target_twins is not None else None,
        }

    def apply(self, twins: Dict[str, DigitalTwin], default_capacity: float = 1000.0) -> List[str]:
        """Apply to targeted twins; returns the ids touched."""
        affected = []
        for twin_id, twin in _selected(twins, self.target_twins):
            if self.condition_type == ConditionType.EFFICIENCY_CHANGE:
                twin.state.current_efficiency *= self.value if self.value is not None else 1.0
            elif self.condition_type == ConditionType.CAPACITY_CHANGE:
                capacity = twin.configuration.production_capacity
                if capacity is None:
                    capacity = default_capacity
                twin.configuration.production_capacity = (
                    capacity * (self.value if self.value is not None else 1.0)
                )
            elif self.condition_type == ConditionType.DOWNTIME_EVENT:
                twin.state.current_downtime += self.value if self.value is not None else 30.0
            elif self.condition_type == ConditionType.RESOURCE_CHANGE:
                twin.state.resource_utilization *= self.value if self.value is not None else 1.0
            twin.state.enforce_invariants()
            affected.append(twin_id)
        return affected

    @property
    def adds_downtime(self) -> bool:
        return self.condition_type == ConditionType.DOWNTIME_EVENT


# =============================================================================
# Risk events
# =============================================================================

class RiskType(str, Enum):
    """Risk event kinds."""
    EQUIPMENT_FAILURE = "equipment_failure"
    QUALITY_ISSUE = "quality_issue"
    WORKER_SHORTAGE = "worker_shortage"
    SUPPLY_DELAY = "supply_delay"


@dataclass(frozen=True)
class RiskEvent:
    """
    A risk that may strike on any step.

    probability is a percentage chance per step. Every risk is re-rolled on
    every step with no cooldown, so a high-probability risk can fire on
    consecutive steps and compound its impact.
    """
    risk_type: RiskType
    probability: float = 10.0
    impact: float = 1.0
    duration: float = 120.0  # minutes of downtime for equipment failures

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RiskEvent':
        return cls(
            risk_type=_parse_enum(RiskType, data.get("type"), "risk type"),
            probability=to_float(data.get("probability"), 10.0),
            impact=to_float(data.get("impact"), 1.0),
            duration=to_float(data.get("duration"), 120.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.risk_type.value,
            "probability": self.probability,
            "impact": self.impact,
            "duration": self.duration,
        }

    def roll(self, rng: random.Random) -> bool:
        """Independent Bernoulli trial for this step."""
        return rng.random() * 100 < self.probability

    def apply(self, twins: Dict[str, DigitalTwin]) -> List[str]:
        affected = []
        for twin_id, twin in twins.items():
            state = twin.state
            if self.risk_type == RiskType.EQUIPMENT_FAILURE:
                state.current_downtime += self.duration
                state.equipment_wear = min(1.0, state.equipment_wear + 0.2)
            elif self.risk_type == RiskType.QUALITY_ISSUE:
                state.quality_rate *= 0.8
            elif self.risk_type == RiskType.WORKER_SHORTAGE:
                state.resource_utilization *= 0.7
                state.current_efficiency *= 0.8
            elif self.risk_type == RiskType.SUPPLY_DELAY:
                state.current_efficiency *= 0.6
            state.enforce_invariants()
            affected.append(twin_id)
        return affected

    @property
    def adds_downtime(self) -> bool:
        return self.risk_type == RiskType.EQUIPMENT_FAILURE


# =============================================================================
# Capacity actions
# =============================================================================

class CapacityActionType(str, Enum):
    """Capacity planning actions."""
    INCREASE_CAPACITY = "increase_capacity"
    ADD_SHIFT = "add_shift"
    UPGRADE_EQUIPMENT = "upgrade_equipment"
    REDUCE_DOWNTIME = "reduce_downtime"


@dataclass(frozen=True)
class CapacityAction:
    """A capacity change taking effect once start_hour is reached."""
    action: CapacityActionType
    start_hour: Optional[float] = None
    multiplier: float = 1.2
    name: str = ""
    target_twins: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CapacityAction':
        action = _parse_enum(CapacityActionType, data.get("action"), "capacity action")
        return cls(
            action=action,
            start_hour=to_float(data.get("start_hour"), None),
            multiplier=to_float(data.get("multiplier"), 1.2),
            name=str(data.get("name") or action.value),
            target_twins=_target_ids(data.get("target_twins")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "start_hour": self.start_hour,
            "multiplier": self.multiplier,
            "name": self.name,
            "target_twins": list(self.target_twins) if self.target_twins is not None else None,
        }

    def apply(self, twins: Dict[str, DigitalTwin], default_capacity: float = 1000.0) -> List[str]:
        affected = []
        for twin_id, twin in _selected(twins, self.target_twins):
            config = twin.configuration
            if self.action in (CapacityActionType.INCREASE_CAPACITY, CapacityActionType.ADD_SHIFT):
                factor = self.multiplier if self.action == CapacityActionType.INCREASE_CAPACITY else 1.5
                capacity = config.production_capacity
                if capacity is None:
                    capacity = default_capacity
                config.production_capacity = capacity * factor
            elif self.action == CapacityActionType.UPGRADE_EQUIPMENT:
                efficiency = config.current_efficiency
                if efficiency is None:
                    efficiency = twin.state.current_efficiency
                config.current_efficiency = clamp(efficiency * 1.1, MIN_EFFICIENCY, MAX_EFFICIENCY)
            elif self.action == CapacityActionType.REDUCE_DOWNTIME:
                twin.state.current_downtime *= 0.5
            affected.append(twin_id)
        return affected


# =============================================================================
# One-shot trigger bookkeeping
# =============================================================================

E = TypeVar("E")


class TriggerSchedule(Generic[E]):
    """
    Releases each scheduled event exactly once, on the first evaluation at
    an elapsed hour >= its trigger hour.

    Re-evaluating the same (or an earlier) hour bucket releases nothing, so
    a hook that runs twice within one step cannot double-apply an event.
    Events without a trigger hour never fire.
    """

    def __init__(self, events: List[E], trigger_of: Callable[[E], Optional[float]]):
        self._events = list(events)
        self._trigger_of = trigger_of
        self._fired: Set[int] = set()
        self._last_hour: Optional[float] = None

    def due(self, elapsed_hours: float) -> List[E]:
        if self._last_hour is not None and elapsed_hours <= self._last_hour:
            return []
        self._last_hour = elapsed_hours

        released = []
        for index, event in enumerate(self._events):
            if index in self._fired:
                continue
            trigger = self._trigger_of(event)
            if trigger is not None and trigger <= elapsed_hours:
                self._fired.add(index)
                released.append(event)

        if released:
            logger.debug(f"Released {len(released)} scheduled event(s) at hour {elapsed_hours}")
        return released

    @property
    def pending(self) -> int:
        return sum(
            1 for i, e in enumerate(self._events)
            if i not in self._fired and self._trigger_of(e) is not None
        )
