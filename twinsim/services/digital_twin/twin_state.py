"""
Twin State Model - Configuration and state vector of a production twin.

A twin pairs a per-run baseline configuration (capacity, efficiency,
manning) with a mutable state vector that the simulation driver advances
one hour at a time. Records arrive from the caller's persistence layer,
either as dicts or with JSON-encoded configuration/state columns.

Invariants enforced on read and after every scenario event:
- 0.1 <= current_efficiency <= 1.0
- 0.0 <= equipment_wear <= 1.0
- 0.0 <= worker_fatigue <= 1.0
- current_downtime >= 0
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional
import copy
import json

from ..errors import TwinConfigurationError


MIN_EFFICIENCY = 0.1
MAX_EFFICIENCY = 1.0


class TwinType(Enum):
    """Kinds of physical entity a twin can replicate."""
    PRODUCTION_LINE = "production_line"
    WORKSTATION = "workstation"
    EQUIPMENT = "equipment"
    PROCESS_CELL = "process_cell"
    ENTIRE_FACILITY = "entire_facility"


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def to_float(value: Any, default: Optional[float]) -> Optional[float]:
    """Coerce a loosely typed record value to float, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def decode_blob(blob: Any, what: str) -> Dict[str, Any]:
    """Decode a dict or JSON-object column into a fresh dict."""
    if blob is None or blob == "":
        return {}
    if isinstance(blob, str):
        try:
            blob = json.loads(blob)
        except json.JSONDecodeError as e:
            raise TwinConfigurationError(f"Invalid JSON in twin {what}: {e}") from e
    if not isinstance(blob, dict):
        raise TwinConfigurationError(
            f"Twin {what} must be an object, got {type(blob).__name__}"
        )
    return dict(blob)


@dataclass
class TwinConfiguration:
    """Baseline configuration; only scenario actions change it during a run."""
    production_capacity: Optional[float] = None  # units per day
    current_efficiency: Optional[float] = None
    manning_level: int = 10
    process_category: str = "general"
    line_shift: Optional[str] = None
    equipment_specs: Dict[str, Any] = field(default_factory=dict)
    quality_parameters: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TwinConfiguration':
        data = dict(data)
        efficiency = to_float(data.pop("current_efficiency", None), None)
        if efficiency is not None:
            efficiency = clamp(efficiency, MIN_EFFICIENCY, MAX_EFFICIENCY)

        manning = to_float(data.pop("manning_level", None), 10)

        return cls(
            production_capacity=to_float(data.pop("production_capacity", None), None),
            current_efficiency=efficiency,
            manning_level=int(manning),
            process_category=str(data.pop("process_category", None) or "general"),
            line_shift=data.pop("line_shift", None),
            equipment_specs=dict(data.pop("equipment_specs", None) or {}),
            quality_parameters=dict(data.pop("quality_parameters", None) or {}),
            extras=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extras)
        result.update({
            "production_capacity": self.production_capacity,
            "current_efficiency": self.current_efficiency,
            "manning_level": self.manning_level,
            "process_category": self.process_category,
            "line_shift": self.line_shift,
            "equipment_specs": dict(self.equipment_specs),
            "quality_parameters": dict(self.quality_parameters),
        })
        return result


@dataclass
class TwinStateVector:
    """Mutable state advanced by the step updater."""
    current_output: float = 0.0
    current_efficiency: float = 0.8
    current_downtime: float = 0.0  # minutes
    quality_rate: float = 0.95
    resource_utilization: float = 0.8
    energy_consumption: float = 0.0
    material_usage: float = 0.0
    worker_fatigue: float = 0.0
    equipment_wear: float = 0.0
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        default_efficiency: float = 0.8,
    ) -> 'TwinStateVector':
        defaults = cls(current_efficiency=default_efficiency)
        values = {}
        for f in fields(cls):
            if f.name == "timestamp":
                values[f.name] = data.get("timestamp")
            else:
                values[f.name] = to_float(data.get(f.name), getattr(defaults, f.name))

        state = cls(**values)
        state.enforce_invariants()
        return state

    def enforce_invariants(self) -> None:
        """Clamp the bounded fields back into range."""
        self.current_efficiency = clamp(self.current_efficiency, MIN_EFFICIENCY, MAX_EFFICIENCY)
        self.equipment_wear = clamp(self.equipment_wear, 0.0, 1.0)
        self.worker_fatigue = clamp(self.worker_fatigue, 0.0, 1.0)
        self.current_downtime = max(0.0, self.current_downtime)

    def copy(self) -> 'TwinStateVector':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class DigitalTwin:
    """
    A virtual production entity: identity, static configuration, live state.

    Twin ids are normalised to strings so timeline keys survive a JSON
    round-trip unchanged.
    """
    twin_id: str
    twin_type: TwinType
    configuration: TwinConfiguration
    state: TwinStateVector
    name: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'DigitalTwin':
        """Build a twin from a caller-supplied record."""
        twin_id = record.get("id", record.get("twin_id"))
        if twin_id is None or twin_id == "":
            raise TwinConfigurationError("Twin record has no id")

        raw_type = record.get("type", record.get("twin_type"))
        try:
            twin_type = TwinType(raw_type)
        except ValueError:
            raise TwinConfigurationError(
                f"Unknown twin type {raw_type!r} for twin {twin_id}"
            ) from None

        configuration = TwinConfiguration.from_dict(
            decode_blob(record.get("configuration"), "configuration")
        )

        state_blob = record.get("state")
        if state_blob is None:
            state_blob = record.get("state_variables")
        baseline_efficiency = (
            configuration.current_efficiency
            if configuration.current_efficiency is not None
            else 0.8
        )
        state = TwinStateVector.from_dict(
            decode_blob(state_blob, "state"),
            default_efficiency=baseline_efficiency,
        )

        return cls(
            twin_id=str(twin_id),
            twin_type=twin_type,
            configuration=configuration,
            state=state,
            name=str(record.get("name", record.get("twin_name")) or ""),
        )

    def working_copy(self) -> 'DigitalTwin':
        """Deep copy owned exclusively by one simulation run."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.twin_id,
            "name": self.name,
            "type": self.twin_type.value,
            "configuration": self.configuration.to_dict(),
            "state": self.state.to_dict(),
        }
