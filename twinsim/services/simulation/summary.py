"""
Summary Generator - Reduce a completed timeline into run analytics.

Provides:
- Run summary (output, efficiency, downtime, peak performance)
- Risk assessment (per-type counts, impacts, risk score)
- Capacity analysis (peak/average utilization, variance, recommendations)
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

PEAK_UTILIZATION_LIMIT = 90.0
LOW_UTILIZATION_LIMIT = 50.0
UTILIZATION_SPREAD_LIMIT = 30.0


def _metric_values(timeline: Sequence[Any], key: str) -> List[float]:
    values = []
    for time_step in timeline:
        for snapshot in time_step.twins.values():
            values.append(float(snapshot.metrics.get(key, 0.0)))
    return values


def generate_summary(timeline: Sequence[Any], twin_count: int) -> Dict[str, Any]:
    """
    Aggregate a timeline of TimeSteps.

    average_efficiency and peak_performance are percentages; average
    efficiency divides by steps x twins. An empty timeline yields zeros.
    """
    total_steps = len(timeline)
    summary = {
        "total_simulation_time": f"{total_steps} hours",
        "total_steps": total_steps,
        "total_output": 0.0,
        "average_efficiency": 0.0,
        "total_downtime": 0.0,
        "peak_performance": 0.0,
        "quality_metrics": {},
    }

    if total_steps == 0 or twin_count == 0:
        return summary

    efficiencies = np.array(_metric_values(timeline, "efficiency"))
    output_rates = np.array(_metric_values(timeline, "output_rate"))
    downtime = np.array(_metric_values(timeline, "downtime_minutes"))
    quality = np.array(_metric_values(timeline, "quality_rate"))

    summary["total_output"] = float(output_rates.sum())
    summary["average_efficiency"] = float(efficiencies.sum() / (total_steps * twin_count) * 100)
    summary["total_downtime"] = float(downtime.sum())
    summary["peak_performance"] = float(efficiencies.max() * 100) if efficiencies.size else 0.0
    if quality.size:
        summary["quality_metrics"] = {
            "average_quality_rate": float(quality.mean()),
            "minimum_quality_rate": float(quality.min()),
        }

    return summary


def calculate_risk_score(risk_impacts: Dict[str, Dict[str, float]]) -> float:
    """Scale total impact to 0-100 (10 points per unit of impact)."""
    total_impact = sum(entry["total_impact"] for entry in risk_impacts.values())
    return float(min(100.0, total_impact * 10))


def generate_risk_assessment(timeline: Sequence[Any]) -> Dict[str, Any]:
    """Collect risk events from the timeline and score them."""
    risk_events: List[Dict[str, Any]] = []
    risk_impacts: Dict[str, Dict[str, float]] = OrderedDict()

    for time_step in timeline:
        for event in time_step.risk_events or []:
            risk_events.append(event)
            entry = risk_impacts.setdefault(
                event["risk_type"], {"count": 0, "total_impact": 0.0}
            )
            entry["count"] += 1
            entry["total_impact"] += event.get("impact", 1.0)

    return {
        "total_risk_events": len(risk_events),
        "risk_events": risk_events,
        "risk_impacts": dict(risk_impacts),
        "risk_score": calculate_risk_score(risk_impacts),
    }


def calculate_variance(values: Iterable[float]) -> float:
    """Sample variance (n - 1); 0 for fewer than two values."""
    values = list(values)
    if len(values) < 2:
        return 0.0
    return float(np.var(values, ddof=1))


def generate_capacity_recommendations(peak: float, average: float) -> List[str]:
    recommendations = []

    if peak > PEAK_UTILIZATION_LIMIT:
        recommendations.append(
            "Consider capacity expansion - peak utilization exceeds 90%"
        )
    if average < LOW_UTILIZATION_LIMIT:
        recommendations.append(
            "Underutilized capacity - consider load balancing or downsizing"
        )
    if peak - average > UTILIZATION_SPREAD_LIMIT:
        recommendations.append(
            "High variance in utilization - implement demand smoothing"
        )

    return recommendations


def generate_capacity_analysis(timeline: Sequence[Any]) -> Dict[str, Any]:
    """Utilization statistics across every twin and step."""
    utilization = _metric_values(timeline, "resource_utilization")

    peak = max(utilization) if utilization else 0.0
    average = float(np.mean(utilization)) if utilization else 0.0

    return {
        "peak_utilization": peak,
        "average_utilization": average,
        "utilization_variance": calculate_variance(utilization),
        "capacity_recommendations": (
            generate_capacity_recommendations(peak, average) if utilization else []
        ),
    }
