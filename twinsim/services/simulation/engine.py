"""
Simulation Engine - Discrete-time driver for scenario runs.

Advances every target twin one simulated hour per step, delegating the
per-step perturbations (what-if conditions, risk trials, capacity actions)
to the strategy registered for the scenario type.

Runs are isolated: each one works on deep copies of its twins, and all
randomness flows from the engine's random.Random so a seeded engine
reproduces a run exactly.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
import logging
import math
import random
import time
import uuid

from ...config import get_config
from ..digital_twin.step_updater import StepUpdater
from ..digital_twin.twin_state import DigitalTwin
from ..errors import ScenarioConfigurationError, TwinNotFoundError
from .run_models import RunStatus, SimulationRun, StepContext, TimeStep, TwinSnapshot
from .scenario import Scenario, ScenarioParameters
from .strategies import get_strategy

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

StepHook = Callable[[StepContext], None]
CancelCheck = Callable[[], bool]


class SimulationEngine:
    """
    Executes scenarios against digital twins.

    The twin source may be a registry exposing ``require(twin_id)``, a
    mapping of id -> twin or twin record, or a callable returning a twin
    (or None) for an id.
    """

    def __init__(
        self,
        twin_source: Any = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        config=None,
        step_updater: Optional[StepUpdater] = None,
    ):
        self.config = config or get_config()
        self.twin_source = twin_source

        if rng is None:
            rng = random.Random(seed if seed is not None else self.config.RANDOM_SEED)
        self.rng = rng

        self.time_step_seconds = self.config.TIME_STEP_SECONDS
        self.default_capacity = self.config.DEFAULT_PRODUCTION_CAPACITY
        self.step_updater = step_updater or StepUpdater(
            rng=self.rng,
            default_capacity=self.default_capacity,
            default_efficiency=self.config.DEFAULT_EFFICIENCY,
        )

    # =========================================================================
    # Twin resolution
    # =========================================================================

    def _lookup(self, twin_id: str) -> DigitalTwin:
        source = self.twin_source
        if source is None:
            raise TwinNotFoundError(twin_id)

        if hasattr(source, "require"):
            twin = source.require(twin_id)
        elif isinstance(source, Mapping):
            twin = source.get(twin_id)
        elif callable(source):
            twin = source(twin_id)
        else:
            raise TypeError(f"Unsupported twin source: {type(source).__name__}")

        if twin is None:
            raise TwinNotFoundError(twin_id)
        if not isinstance(twin, DigitalTwin):
            twin = DigitalTwin.from_record(twin)
        return twin

    def resolve_twins(self, twin_ids) -> Dict[str, DigitalTwin]:
        """Working copies of the target twins, in target order."""
        twins: Dict[str, DigitalTwin] = {}
        for twin_id in twin_ids:
            twins[str(twin_id)] = self._lookup(str(twin_id)).working_copy()
        return twins

    # =========================================================================
    # Execution
    # =========================================================================

    def total_steps(self, duration_hours: float) -> int:
        """Whole steps needed to cover the duration; a partial hour counts."""
        steps = duration_hours * 3600 / self.time_step_seconds
        return max(0, math.ceil(round(steps, 9)))

    def execute(
        self,
        scenario: Union[Scenario, Mapping[str, Any]],
        run_parameters: Optional[Mapping[str, Any]] = None,
        cancel_check: Optional[CancelCheck] = None,
        start_time: Optional[datetime] = None,
    ) -> SimulationRun:
        """
        Run a scenario to completion.

        Args:
            scenario: Scenario or scenario record
            run_parameters: Per-run overrides merged over the scenario's
                input parameters; may carry duration_hours
            cancel_check: Polled before every step; returning True stops
                the run with status CANCELLED and a partial timeline
            start_time: Simulated clock origin (defaults to now)

        Returns:
            The completed (or cancelled) SimulationRun

        Raises:
            ScenarioConfigurationError, OptimizationConfigurationError,
            TwinNotFoundError: before any step executes
            Any error raised mid-run propagates unchanged after the run is
            marked FAILED; the run is attached as ``simulation_run``
        """
        if not isinstance(scenario, Scenario):
            scenario = Scenario.from_record(scenario)

        params: ScenarioParameters = scenario.input_parameters.merged(run_parameters)
        duration_hours = (
            params.duration_hours
            if params.duration_hours is not None
            else scenario.duration_hours
        )
        if duration_hours < 0:
            raise ScenarioConfigurationError(f"Negative run duration: {duration_hours}")

        strategy = get_strategy(scenario.scenario_type)
        strategy.validate(params)
        twins = self.resolve_twins(scenario.target_twins)

        clock = start_time or datetime.now().replace(microsecond=0)
        run = SimulationRun(
            run_id=str(uuid.uuid4()),
            scenario_id=scenario.scenario_id,
            scenario_name=scenario.name,
            scenario_type=scenario.scenario_type.value,
            duration_hours=duration_hours,
            run_parameters=params.to_dict(),
            twins={twin_id: twin.to_dict() for twin_id, twin in twins.items()},
            start_time=clock.strftime(TIMESTAMP_FORMAT),
        )

        run.status = RunStatus.RUNNING
        logger.info(
            f"Starting simulation run {run.run_id}: scenario={scenario.scenario_id} "
            f"type={run.scenario_type} twins={len(twins)} hours={duration_hours}"
        )
        started = time.perf_counter()

        try:
            strategy.run(self, run, twins, params, cancel_check=cancel_check)
        except Exception as e:
            run.status = RunStatus.FAILED
            run.error = str(e)
            run.duration_seconds = round(time.perf_counter() - started, 3)
            logger.error(f"Simulation run {run.run_id} failed at step {len(run.timeline)}: {e}")
            e.simulation_run = run
            raise

        if run.status == RunStatus.RUNNING:
            run.status = RunStatus.COMPLETED
        run.duration_seconds = round(time.perf_counter() - started, 3)

        logger.info(
            f"Simulation run {run.run_id} {run.status.value}: "
            f"{len(run.timeline)} steps in {run.duration_seconds}s"
        )
        return run

    def drive(
        self,
        run: SimulationRun,
        twins: Dict[str, DigitalTwin],
        params: ScenarioParameters,
        step_hook: Optional[StepHook] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> List[TimeStep]:
        """
        Step the simulated clock across the run duration.

        Each step: cancellation check, strategy hook (may mutate twins),
        step update for every twin, snapshot appended to the timeline,
        clock advanced one step.
        """
        clock = datetime.strptime(run.start_time, TIMESTAMP_FORMAT)
        step_delta = timedelta(seconds=self.time_step_seconds)

        for step in range(self.total_steps(run.duration_hours)):
            if cancel_check is not None and cancel_check():
                run.status = RunStatus.CANCELLED
                logger.warning(f"Simulation run {run.run_id} cancelled after {step} steps")
                break

            timestamp = clock.strftime(TIMESTAMP_FORMAT)
            time_step = TimeStep(step=step, timestamp=timestamp)
            context = StepContext(
                step=step,
                elapsed_hours=step * self.time_step_seconds / 3600,
                timestamp=timestamp,
                twins=twins,
                rng=self.rng,
                time_step=time_step,
                default_capacity=self.default_capacity,
            )
            if step_hook is not None:
                step_hook(context)

            for twin_id, twin in twins.items():
                outcome = self.step_updater.update(
                    twin, params, step,
                    timestamp=timestamp,
                    disrupted=twin_id in context.disrupted,
                )
                twin.state = outcome.state
                # Scenario events mutate twin.state in place; the snapshot
                # must not alias it.
                time_step.twins[twin_id] = TwinSnapshot(
                    state=outcome.state.copy(),
                    metrics=outcome.metrics,
                    events=outcome.events,
                )

            run.timeline.append(time_step)
            clock += step_delta

        run.end_time = clock.strftime(TIMESTAMP_FORMAT)
        return run.timeline
