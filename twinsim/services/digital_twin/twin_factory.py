"""
Twin Factory - Seed new twins from historical production baselines.

A twin's starting configuration comes from the most recent daily
performance records of the line/shift it mirrors: capacity and manning
from the latest record, efficiency averaged over the window.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging
import uuid

import numpy as np

from ...config import get_config
from ..errors import TwinConfigurationError
from .twin_state import (
    DigitalTwin,
    TwinConfiguration,
    TwinStateVector,
    TwinType,
    MIN_EFFICIENCY,
    MAX_EFFICIENCY,
    clamp,
    to_float,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("twin_name", "line_shift", "twin_type")


def _mean(records: Sequence[Dict[str, Any]], key: str) -> Optional[float]:
    values = [to_float(r.get(key), None) for r in records]
    values = [v for v in values if v is not None]
    if not values:
        return None
    return float(np.mean(values))


def compute_baseline(
    records: Sequence[Dict[str, Any]],
    window: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Reduce daily performance records to a production baseline.

    Records are ordered newest first by their ``date`` field when present.
    Efficiency values above 1 are treated as percentages.

    Returns:
        Empty dict when there is no history, else capacity, efficiency,
        manning_level, process_category, avg_output, avg_plan, avg_downtime
    """
    if not records:
        return {}

    window = window or get_config().BASELINE_WINDOW_DAYS
    ordered = sorted(records, key=lambda r: str(r.get("date", "")), reverse=True)
    recent = ordered[:window]
    latest = recent[0]

    efficiency = _mean(recent, "efficiency")
    if efficiency is not None and efficiency > 1.0:
        efficiency = efficiency / 100.0

    return {
        "capacity": to_float(latest.get("daily_capacity"), None),
        "efficiency": efficiency,
        "manning_level": latest.get("manning_level"),
        "process_category": latest.get("process_category"),
        "avg_output": _mean(recent, "actual_output"),
        "avg_plan": _mean(recent, "plan"),
        "avg_downtime": _mean(recent, "machine_downtime"),
    }


def create_twin(
    twin_data: Dict[str, Any],
    baseline_records: Optional[List[Dict[str, Any]]] = None,
    twin_id: Optional[str] = None,
) -> DigitalTwin:
    """
    Create a twin whose configuration is seeded from historical baselines.

    Args:
        twin_data: twin_name, line_shift, twin_type and optional
            equipment_specs / quality_parameters
        baseline_records: Daily performance rows for the line/shift
        twin_id: Identity to assign; generated when omitted

    Raises:
        TwinConfigurationError: a required field is missing or the twin
            type is unknown
    """
    for name in REQUIRED_FIELDS:
        if not twin_data.get(name):
            raise TwinConfigurationError(f"Required field '{name}' is missing")

    try:
        twin_type = TwinType(twin_data["twin_type"])
    except ValueError:
        raise TwinConfigurationError(
            f"Unknown twin type {twin_data['twin_type']!r}"
        ) from None

    settings = get_config()
    baseline = compute_baseline(baseline_records or [])

    capacity = baseline.get("capacity") or settings.DEFAULT_PRODUCTION_CAPACITY
    efficiency = baseline.get("efficiency")
    if efficiency is None:
        efficiency = settings.DEFAULT_EFFICIENCY
    efficiency = clamp(efficiency, MIN_EFFICIENCY, MAX_EFFICIENCY)

    configuration = TwinConfiguration(
        production_capacity=capacity,
        current_efficiency=efficiency,
        manning_level=int(baseline.get("manning_level") or settings.DEFAULT_MANNING_LEVEL),
        process_category=baseline.get("process_category") or "general",
        line_shift=twin_data["line_shift"],
        equipment_specs=dict(twin_data.get("equipment_specs") or {}),
        quality_parameters=dict(twin_data.get("quality_parameters") or {}),
    )

    state = TwinStateVector(
        current_output=0.0,
        current_efficiency=efficiency,
        current_downtime=0.0,
        quality_rate=0.95,
        resource_utilization=0.8,
    )

    twin = DigitalTwin(
        twin_id=str(twin_id or uuid.uuid4()),
        twin_type=twin_type,
        configuration=configuration,
        state=state,
        name=twin_data["twin_name"],
    )

    logger.info(
        f"Created twin {twin.twin_id} ({twin.name}) for {configuration.line_shift}: "
        f"capacity={capacity:.0f}, efficiency={efficiency:.3f}"
    )
    return twin
