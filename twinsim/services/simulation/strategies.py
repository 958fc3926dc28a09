"""
Scenario Strategies - Per-scenario-type behaviour plugged into the driver.

Every strategy shares the same step loop (SimulationEngine.drive) and
differs only in the hook it runs at the top of each step and in what it
attaches to the run afterwards.

Strategies:
- standard / process_improvement: baseline run, summary only
- what_if: one-shot conditions at trigger hours
- risk_assessment: per-step Bernoulli risk trials
- capacity_planning: one-shot capacity actions at start hours
- optimization: GA search, then a standard run with the best parameters
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
import logging

from ..errors import OptimizationConfigurationError, ScenarioConfigurationError
from ..optimization.genetic_algorithm import GAConfig, GeneticAlgorithm
from .run_models import SimulationRun, StepContext
from .scenario import ScenarioParameters, ScenarioType
from .scenario_events import TriggerSchedule
from .summary import generate_capacity_analysis, generate_risk_assessment, generate_summary

if TYPE_CHECKING:
    from .engine import SimulationEngine

logger = logging.getLogger(__name__)

StepHook = Callable[[StepContext], None]


class ScenarioStrategy(ABC):
    """Base strategy: drive the clock with an optional hook, then summarise."""

    scenario_type: ScenarioType = ScenarioType.STANDARD

    def validate(self, params: ScenarioParameters) -> None:
        """Reject unusable parameters before any step runs."""

    @abstractmethod
    def step_hook(self, params: ScenarioParameters) -> Optional[StepHook]:
        """Hook run at the start of every step, or None for no events."""

    def run(
        self,
        engine: 'SimulationEngine',
        run: SimulationRun,
        twins: Dict[str, Any],
        params: ScenarioParameters,
        cancel_check=None,
    ) -> None:
        engine.drive(
            run, twins, params,
            step_hook=self.step_hook(params),
            cancel_check=cancel_check,
        )
        self.finalize(run, params)

    def finalize(self, run: SimulationRun, params: ScenarioParameters) -> None:
        run.summary = generate_summary(run.timeline, len(run.twins))


class StandardStrategy(ScenarioStrategy):
    scenario_type = ScenarioType.STANDARD

    def step_hook(self, params):
        return None


class ProcessImprovementStrategy(StandardStrategy):
    """No dedicated model yet; runs as a standard simulation."""
    scenario_type = ScenarioType.PROCESS_IMPROVEMENT


class WhatIfStrategy(ScenarioStrategy):
    """Applies each condition once, on the first step at or past its trigger."""
    scenario_type = ScenarioType.WHAT_IF

    def __init__(self):
        self.event_log: List[Dict[str, Any]] = []

    def step_hook(self, params):
        if not params.conditions:
            return None

        schedule = TriggerSchedule(list(params.conditions), lambda c: c.trigger_time)

        def apply_conditions(context: StepContext) -> None:
            events = []
            for condition in schedule.due(context.elapsed_hours):
                affected = condition.apply(context.twins, context.default_capacity)
                if condition.adds_downtime:
                    context.disrupted.update(affected)
                events.append({
                    "type": "condition_applied",
                    "condition": condition.name,
                    "condition_type": condition.condition_type.value,
                    "value": condition.value,
                    "time": context.elapsed_hours,
                    "affected_twins": affected,
                })
            context.time_step.events = events
            self.event_log.extend(events)

        return apply_conditions

    def finalize(self, run, params):
        super().finalize(run, params)
        if params.conditions:
            run.summary["event_log"] = list(self.event_log)


class RiskAssessmentStrategy(ScenarioStrategy):
    """
    Rolls every risk on every step.

    There is no cooldown: a risk that fired on the previous step is rolled
    again, so impacts compound under high probabilities.
    """
    scenario_type = ScenarioType.RISK_ASSESSMENT

    def step_hook(self, params):
        risks = list(params.risk_scenarios)

        def roll_risks(context: StepContext) -> None:
            risk_events = []
            for risk in risks:
                if not risk.roll(context.rng):
                    continue
                affected = risk.apply(context.twins)
                if risk.adds_downtime:
                    context.disrupted.update(affected)
                risk_events.append({
                    "risk_type": risk.risk_type.value,
                    "impact": risk.impact,
                    "timestamp": context.timestamp,
                    "affected_twins": affected,
                })
            context.time_step.risk_events = risk_events

        return roll_risks

    def finalize(self, run, params):
        super().finalize(run, params)
        run.risk_assessment = generate_risk_assessment(run.timeline)


class CapacityPlanningStrategy(ScenarioStrategy):
    scenario_type = ScenarioType.CAPACITY_PLANNING

    def step_hook(self, params):
        schedule = TriggerSchedule(list(params.capacity_scenarios), lambda a: a.start_hour)

        def apply_actions(context: StepContext) -> None:
            events = []
            for action in schedule.due(context.elapsed_hours):
                affected = action.apply(context.twins, context.default_capacity)
                events.append({
                    "type": "capacity_action",
                    "action": action.action.value,
                    "name": action.name,
                    "multiplier": action.multiplier,
                    "time": context.elapsed_hours,
                    "affected_twins": affected,
                })
            context.time_step.events = events

        return apply_actions

    def finalize(self, run, params):
        super().finalize(run, params)
        run.capacity_analysis = generate_capacity_analysis(run.timeline)


class OptimizationStrategy(ScenarioStrategy):
    """Search run parameters with the GA, then simulate the winner."""
    scenario_type = ScenarioType.OPTIMIZATION

    SUPPORTED_METHODS = ("genetic_algorithm",)

    def validate(self, params):
        if not params.optimization_goals:
            raise OptimizationConfigurationError(
                "Optimization scenario has no enabled optimization_goals"
            )
        if params.optimization_method not in self.SUPPORTED_METHODS:
            raise ScenarioConfigurationError(
                f"Unsupported optimization method: {params.optimization_method!r}"
            )

    def step_hook(self, params):
        return None

    @staticmethod
    def ga_config(engine: 'SimulationEngine', params: ScenarioParameters) -> GAConfig:
        def pick(value, default):
            return default if value is None else value

        return GAConfig(
            population_size=max(0, pick(params.population_size, engine.config.GA_POPULATION_SIZE)),
            generations=max(0, pick(params.iterations, engine.config.GA_GENERATIONS)),
            mutation_rate=pick(params.mutation_rate, engine.config.GA_MUTATION_RATE),
        )

    def run(self, engine, run, twins, params, cancel_check=None):
        optimizer = GeneticAlgorithm(
            self.ga_config(engine, params),
            params.optimization_goals,
            rng=engine.rng,
        )
        result = optimizer.run()

        run.optimization_results = result.to_dict()
        run.optimization_applied = result.best_parameters
        if result.best is None:
            logger.warning(f"Run {run.run_id}: optimizer produced no candidate, using scenario parameters")

        tuned = params.with_modifiers(**result.best_parameters)
        engine.drive(run, twins, tuned, cancel_check=cancel_check)
        self.finalize(run, tuned)


STRATEGIES = {
    strategy.scenario_type: strategy
    for strategy in (
        StandardStrategy,
        ProcessImprovementStrategy,
        WhatIfStrategy,
        RiskAssessmentStrategy,
        CapacityPlanningStrategy,
        OptimizationStrategy,
    )
}


def get_strategy(scenario_type: ScenarioType) -> ScenarioStrategy:
    """Fresh strategy instance for one run."""
    try:
        return STRATEGIES[ScenarioType(scenario_type)]()
    except (KeyError, ValueError):
        raise ScenarioConfigurationError(f"Unknown scenario type: {scenario_type!r}") from None
