"""
Step Updater - Advance one twin by one simulated hour.

Production model per step:
- output rate = (daily capacity / 8) x efficiency x U(0.95, 1.05)
- efficiency drifts down by ~0.001 per hour with small noise
- stochastic failures proportional to equipment wear, else downtime recovery
- wear accumulates, fatigue rises at the end of each 8-hour shift

The updater never raises on malformed overrides; anything unusable falls
back to a neutral value.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import random

from .twin_state import (
    DigitalTwin,
    TwinStateVector,
    MIN_EFFICIENCY,
    MAX_EFFICIENCY,
    clamp,
    to_float,
)

SHIFT_HOURS = 8
DEFAULT_CAPACITY = 1000.0
DEFAULT_EFFICIENCY = 0.8

# Per-step dynamics
EFFICIENCY_DRIFT = -0.001
EFFICIENCY_NOISE = 0.0005
FAILURE_PROBABILITY_PER_WEAR = 0.01
FAILURE_DOWNTIME_MINUTES = (10, 60)
DOWNTIME_RECOVERY_MINUTES = 5.0
WEAR_INCREMENT = 0.0001
FATIGUE_ONSET_HOUR = 6  # hour within shift after which fatigue builds
FATIGUE_GAIN = 0.05
FATIGUE_RECOVERY = 0.02


@dataclass
class StepOutcome:
    """New state, metric snapshot and events produced by one step."""
    state: TwinStateVector
    metrics: Dict[str, float]
    events: List[Dict[str, Any]] = field(default_factory=list)


def _modifier(value: Any) -> float:
    """Run-parameter multiplier; missing, non-numeric or negative means 1.0."""
    number = to_float(value, 1.0)
    return number if number >= 0 else 1.0


class StepUpdater:
    """Applies the hourly production model to a single twin."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        default_capacity: float = DEFAULT_CAPACITY,
        default_efficiency: float = DEFAULT_EFFICIENCY,
    ):
        self.rng = rng or random.Random()
        self.default_capacity = default_capacity
        self.default_efficiency = default_efficiency

    def effective_capacity(self, twin: DigitalTwin, overrides: Any) -> float:
        capacity = to_float(twin.configuration.production_capacity, None)
        if capacity is None:
            capacity = self.default_capacity
        return max(0.0, capacity) * _modifier(getattr(overrides, "capacity_modifier", None))

    def effective_efficiency(self, twin: DigitalTwin, overrides: Any) -> float:
        efficiency = to_float(twin.configuration.current_efficiency, None)
        if efficiency is None:
            efficiency = self.default_efficiency
        return efficiency * _modifier(getattr(overrides, "efficiency_modifier", None))

    def update(
        self,
        twin: DigitalTwin,
        overrides: Any,
        step: int,
        timestamp: Optional[str] = None,
        disrupted: bool = False,
    ) -> StepOutcome:
        """
        Compute the twin's state after one hour.

        Args:
            twin: Twin working copy; its state is read, never mutated
            overrides: Run parameters exposing efficiency/capacity modifiers
            step: Zero-based step index, drives the shift fatigue cycle
            timestamp: Simulated timestamp recorded on the new state
            disrupted: A scenario event already charged downtime this step,
                so no recovery is credited

        Returns:
            StepOutcome with the new state, metrics and any failure events
        """
        state = twin.state
        events: List[Dict[str, Any]] = []

        efficiency = self.effective_efficiency(twin, overrides)
        capacity = self.effective_capacity(twin, overrides)
        nominal_rate = capacity / SHIFT_HOURS

        random_factor = self.rng.uniform(0.95, 1.05)
        output_rate = nominal_rate * efficiency * random_factor
        cumulative_output = state.current_output + output_rate

        drift = EFFICIENCY_DRIFT + self.rng.uniform(-EFFICIENCY_NOISE, EFFICIENCY_NOISE)
        current_efficiency = clamp(
            state.current_efficiency + drift, MIN_EFFICIENCY, MAX_EFFICIENCY
        )

        failure_probability = state.equipment_wear * FAILURE_PROBABILITY_PER_WEAR
        if self.rng.random() < failure_probability:
            added = self.rng.randint(*FAILURE_DOWNTIME_MINUTES)
            current_downtime = state.current_downtime + added
            events.append({
                "type": "equipment_failure",
                "downtime_added": added,
                "step": step,
            })
        elif disrupted:
            current_downtime = state.current_downtime
        else:
            current_downtime = max(0.0, state.current_downtime - DOWNTIME_RECOVERY_MINUTES)

        equipment_wear = min(1.0, state.equipment_wear + WEAR_INCREMENT)

        if step % SHIFT_HOURS > FATIGUE_ONSET_HOUR:
            worker_fatigue = min(1.0, state.worker_fatigue + FATIGUE_GAIN)
        else:
            worker_fatigue = max(0.0, state.worker_fatigue - FATIGUE_RECOVERY)

        quality_rate = min(99.0, 95 + current_efficiency * 4 - worker_fatigue * 10)
        if nominal_rate > 0:
            resource_utilization = min(100.0, (output_rate / nominal_rate) * 100)
        else:
            resource_utilization = 0.0

        metrics = {
            "output_rate": output_rate,
            "cumulative_output": cumulative_output,
            "efficiency": current_efficiency,
            "downtime_minutes": current_downtime,
            "equipment_health": (1 - equipment_wear) * 100,
            "worker_fatigue": worker_fatigue * 100,
            "quality_rate": quality_rate,
            "resource_utilization": resource_utilization,
        }

        new_state = state.copy()
        new_state.current_output = cumulative_output
        new_state.current_efficiency = current_efficiency
        new_state.current_downtime = current_downtime
        new_state.equipment_wear = equipment_wear
        new_state.worker_fatigue = worker_fatigue
        new_state.timestamp = timestamp

        return StepOutcome(state=new_state, metrics=metrics, events=events)
