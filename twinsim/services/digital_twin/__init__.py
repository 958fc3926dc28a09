"""
Digital Twin Module
===================

Virtual replicas of production lines, workstations and equipment.

Components:
-----------

1. **DigitalTwin / TwinStateVector**:
   - Static configuration (capacity, efficiency, manning)
   - Mutable state advanced by the simulation

2. **StepUpdater**:
   - Hourly production model (output, drift, failures, wear, fatigue)

3. **Twin factory**:
   - New twins seeded from recent daily performance records

4. **InMemoryTwinRegistry**:
   - Caller-owned lookup of twins by id
"""

from .twin_state import (
    DigitalTwin,
    TwinConfiguration,
    TwinStateVector,
    TwinType,
)
from .step_updater import StepOutcome, StepUpdater
from .twin_factory import compute_baseline, create_twin
from .twin_registry import InMemoryTwinRegistry

__all__ = [
    # State model
    "DigitalTwin",
    "TwinConfiguration",
    "TwinStateVector",
    "TwinType",

    # Step model
    "StepOutcome",
    "StepUpdater",

    # Creation and lookup
    "compute_baseline",
    "create_twin",
    "InMemoryTwinRegistry",
]
