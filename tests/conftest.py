"""
Pytest configuration and fixtures for the TwinSim test suite.
"""

import pytest
import sys
import os
import random
from datetime import datetime
from typing import Dict, Any, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("TWINSIM_ENV", "testing")


# ============================================================================
# Random / Clock Fixtures
# ============================================================================

@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def start_time():
    """Fixed simulated clock origin."""
    return datetime(2024, 1, 15, 6, 0, 0)


# ============================================================================
# Twin Fixtures
# ============================================================================

@pytest.fixture
def line_record() -> Dict[str, Any]:
    """Production line twin record with JSON-encoded columns."""
    return {
        "id": 1,
        "name": "Line 1 - Day",
        "type": "production_line",
        "configuration": '{"production_capacity": 800, "current_efficiency": 0.9, '
                         '"manning_level": 12, "line_shift": "L1-DAY"}',
        "state": '{"current_output": 0, "current_efficiency": 0.9, '
                 '"quality_rate": 0.95, "resource_utilization": 0.8}',
    }


@pytest.fixture
def cell_record() -> Dict[str, Any]:
    """Process cell twin record with dict columns and no capacity."""
    return {
        "id": "cell-7",
        "name": "Cell 7",
        "type": "process_cell",
        "configuration": {"current_efficiency": 0.75},
        "state": {"current_efficiency": 0.75, "equipment_wear": 0.0},
    }


@pytest.fixture
def sample_twins(line_record, cell_record) -> List[Dict[str, Any]]:
    return [line_record, cell_record]


@pytest.fixture
def registry(sample_twins):
    """Registry holding both sample twins."""
    from twinsim.services.digital_twin import InMemoryTwinRegistry
    return InMemoryTwinRegistry(sample_twins)


@pytest.fixture
def engine(registry):
    """Seeded simulation engine over the sample registry."""
    from twinsim.config import TestingConfig
    from twinsim.services.simulation import SimulationEngine
    return SimulationEngine(registry, seed=7, config=TestingConfig)


@pytest.fixture
def make_scenario():
    """Factory for scenario records."""
    def _make(scenario_type="standard", targets=("1",), params=None, duration=3, **extra):
        record = {
            "id": extra.pop("id", f"sc-{scenario_type}"),
            "scenario_name": extra.pop("scenario_name", f"{scenario_type} test"),
            "scenario_type": scenario_type,
            "target_twins": list(targets),
            "input_parameters": params or {},
            "duration_hours": duration,
        }
        record.update(extra)
        return record
    return _make


# ============================================================================
# Baseline Fixtures
# ============================================================================

@pytest.fixture
def daily_records() -> List[Dict[str, Any]]:
    """Three days of performance history, oldest first."""
    return [
        {"date": "2024-01-01", "daily_capacity": 900, "efficiency": 80,
         "manning_level": 9, "process_category": "assembly",
         "actual_output": 700, "plan": 850, "machine_downtime": 30},
        {"date": "2024-01-02", "daily_capacity": 950, "efficiency": 85,
         "manning_level": 10, "process_category": "assembly",
         "actual_output": 760, "plan": 850, "machine_downtime": 20},
        {"date": "2024-01-03", "daily_capacity": 1000, "efficiency": 90,
         "manning_level": 11, "process_category": "assembly",
         "actual_output": 820, "plan": 900, "machine_downtime": 10},
    ]
