"""
Run Models - Timeline and result structures of a simulation run.

A SimulationRun is built by the engine, owned by the caller once returned,
and serialises losslessly to dicts/JSON so the caller can persist it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import json
import random

from ..digital_twin.twin_state import DigitalTwin, TwinStateVector


class RunStatus(Enum):
    """Lifecycle of one simulation run."""
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TwinSnapshot:
    """One twin's state, metrics and events at the end of a step."""
    state: TwinStateVector
    metrics: Dict[str, float]
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.to_dict(),
            "metrics": dict(self.metrics),
            "events": list(self.events),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TwinSnapshot':
        return cls(
            state=TwinStateVector(**data["state"]),
            metrics=dict(data.get("metrics", {})),
            events=list(data.get("events", [])),
        )


@dataclass
class TimeStep:
    """Snapshot of every target twin after one simulated hour."""
    step: int
    timestamp: str
    twins: Dict[str, TwinSnapshot] = field(default_factory=dict)
    events: Optional[List[Dict[str, Any]]] = None
    risk_events: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "step": self.step,
            "timestamp": self.timestamp,
            "twins": {twin_id: snap.to_dict() for twin_id, snap in self.twins.items()},
        }
        if self.events is not None:
            result["events"] = list(self.events)
        if self.risk_events is not None:
            result["risk_events"] = list(self.risk_events)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeStep':
        return cls(
            step=data["step"],
            timestamp=data["timestamp"],
            twins={
                twin_id: TwinSnapshot.from_dict(snap)
                for twin_id, snap in data.get("twins", {}).items()
            },
            events=data.get("events"),
            risk_events=data.get("risk_events"),
        )


@dataclass
class StepContext:
    """What a strategy's per-step hook may read and mutate."""
    step: int
    elapsed_hours: float
    timestamp: str
    twins: Dict[str, DigitalTwin]
    rng: random.Random
    time_step: TimeStep
    default_capacity: float = 1000.0
    disrupted: Set[str] = field(default_factory=set)


OPTIONAL_SECTIONS = (
    "optimization_results",
    "optimization_applied",
    "risk_assessment",
    "capacity_analysis",
)


@dataclass
class SimulationRun:
    """One execution of a scenario against its target twins."""
    run_id: str
    scenario_id: str
    scenario_name: str
    scenario_type: str
    duration_hours: float
    run_parameters: Dict[str, Any] = field(default_factory=dict)
    twins: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    status: RunStatus = RunStatus.INITIALIZED
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_seconds: float = 0.0
    timeline: List[TimeStep] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    optimization_results: Optional[Dict[str, Any]] = None
    optimization_applied: Optional[Dict[str, Any]] = None
    risk_assessment: Optional[Dict[str, Any]] = None
    capacity_analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "run_id": self.run_id,
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "scenario_type": self.scenario_type,
            "duration_hours": self.duration_hours,
            "run_parameters": dict(self.run_parameters),
            "twins": dict(self.twins),
            "status": self.status.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_seconds": self.duration_seconds,
            "timeline": [ts.to_dict() for ts in self.timeline],
            "summary": dict(self.summary),
            "error": self.error,
        }
        for name in OPTIONAL_SECTIONS:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationRun':
        return cls(
            run_id=data["run_id"],
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", ""),
            scenario_type=data["scenario_type"],
            duration_hours=data["duration_hours"],
            run_parameters=dict(data.get("run_parameters", {})),
            twins=dict(data.get("twins", {})),
            status=RunStatus(data.get("status", RunStatus.INITIALIZED.value)),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            duration_seconds=data.get("duration_seconds", 0.0),
            timeline=[TimeStep.from_dict(ts) for ts in data.get("timeline", [])],
            summary=dict(data.get("summary", {})),
            error=data.get("error"),
            **{name: data.get(name) for name in OPTIONAL_SECTIONS},
        )

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, payload: str) -> 'SimulationRun':
        return cls.from_dict(json.loads(payload))
