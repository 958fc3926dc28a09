"""
Genetic Algorithm - Evolutionary search over simulation parameters.

Searches the run-parameter space (efficiency, capacity, quality and
resource modifiers) for the vector that maximises a goal-weighted fitness.
Fitness is computed directly from the parameters, not by simulating each
candidate, so a full search costs microseconds per individual.

Each generation is produced by a pipeline of pure stages:

    evaluate -> elite + (tournament select -> uniform crossover -> mutate)

Every stage returns new objects; nothing in a previous generation is
mutated, so the best-ever individual can be held by reference.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union
import logging
import random

from ..errors import OptimizationConfigurationError

logger = logging.getLogger(__name__)


class OptimizationGoal(str, Enum):
    """Objectives an optimization scenario may switch on."""
    MAXIMIZE_EFFICIENCY = "maximize_efficiency"
    MAXIMIZE_CAPACITY = "maximize_capacity"
    MAXIMIZE_QUALITY = "maximize_quality"
    OPTIMIZE_RESOURCES = "optimize_resources"


# Sampling range of each gene in a fresh individual
PARAMETER_BOUNDS: Dict[str, Tuple[float, float]] = {
    "efficiency_modifier": (0.8, 1.0),
    "capacity_modifier": (0.9, 1.0),
    "quality_target": (0.95, 1.0),
    "resource_optimization": (0.0, 1.0),
}

# goal -> (gene, weight, offset); term = weight * (gene - offset)
GOAL_TERMS: Dict[OptimizationGoal, Tuple[str, float, float]] = {
    OptimizationGoal.MAXIMIZE_EFFICIENCY: ("efficiency_modifier", 100.0, 0.0),
    OptimizationGoal.MAXIMIZE_CAPACITY: ("capacity_modifier", 50.0, 0.0),
    OptimizationGoal.MAXIMIZE_QUALITY: ("quality_target", 500.0, 0.95),
    OptimizationGoal.OPTIMIZE_RESOURCES: ("resource_optimization", 30.0, 0.0),
}


@dataclass(frozen=True)
class ParameterVector:
    """One candidate set of run-parameter multipliers."""
    efficiency_modifier: float
    capacity_modifier: float
    quality_target: float
    resource_optimization: float

    @classmethod
    def gene_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in self.gene_names()}


@dataclass(frozen=True)
class Individual:
    """A candidate parameter vector and its fitness."""
    parameters: ParameterVector
    fitness: float = 0.0
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": self.parameters.to_dict(),
            "fitness": self.fitness,
            "generation": self.generation,
        }


@dataclass
class GAConfig:
    """Genetic algorithm configuration."""
    population_size: int = 50
    generations: int = 100
    mutation_rate: float = 0.1
    tournament_size: int = 3
    elitism_fraction: float = 0.1
    min_elitism: int = 2
    mutation_scale: float = 0.10
    gene_floor: float = 0.1
    gene_ceiling: float = 2.0
    report_every: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class OptimizationResult:
    """Outcome of one optimization run."""
    best: Optional[Individual]
    best_fitness: float
    generations: int
    goals: List[str]
    history: List[Dict[str, Any]] = field(default_factory=list)
    best_fitness_trace: List[float] = field(default_factory=list)

    @property
    def best_parameters(self) -> Dict[str, float]:
        return self.best.parameters.to_dict() if self.best else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_solution": self.best.to_dict() if self.best else None,
            "best_fitness": self.best_fitness,
            "generations": self.generations,
            "goals": list(self.goals),
            "history": list(self.history),
        }


GoalInput = Union[Mapping[str, Any], Iterable[Union[str, OptimizationGoal]], None]


def parse_goals(goals: GoalInput) -> FrozenSet[OptimizationGoal]:
    """
    Normalise goals given as ``{"maximize_efficiency": True, ...}`` or as
    an iterable of goal names.

    Raises:
        OptimizationConfigurationError: on an unknown goal name
    """
    if goals is None:
        return frozenset()
    if isinstance(goals, Mapping):
        names = [name for name, enabled in goals.items() if enabled]
    else:
        names = list(goals)

    parsed = set()
    for name in names:
        try:
            parsed.add(OptimizationGoal(name))
        except ValueError:
            raise OptimizationConfigurationError(
                f"Unknown optimization goal: {name!r}"
            ) from None
    return frozenset(parsed)


def fitness(parameters: ParameterVector, goals: FrozenSet[OptimizationGoal]) -> float:
    """Weighted sum of the active goal terms; inactive goals contribute 0."""
    score = 0.0
    for goal in goals:
        gene, weight, offset = GOAL_TERMS[goal]
        score += weight * (getattr(parameters, gene) - offset)
    return score


def random_individual(rng: random.Random) -> Individual:
    genes = {
        name: rng.uniform(low, high)
        for name, (low, high) in PARAMETER_BOUNDS.items()
    }
    return Individual(parameters=ParameterVector(**genes))


def initial_population(size: int, rng: random.Random) -> List[Individual]:
    return [random_individual(rng) for _ in range(size)]


def evaluate(
    population: List[Individual],
    goals: FrozenSet[OptimizationGoal],
    generation: int,
) -> List[Individual]:
    """Score every individual."""
    return [
        replace(ind, fitness=fitness(ind.parameters, goals), generation=generation)
        for ind in population
    ]


def rank(population: List[Individual]) -> List[Individual]:
    """Fittest first; ties keep their original order."""
    return sorted(population, key=lambda i: i.fitness, reverse=True)


def elite_count(population_size: int, config: GAConfig) -> int:
    count = max(config.min_elitism, int(population_size * config.elitism_fraction))
    return min(count, population_size)


def select_elite(population: List[Individual], count: int) -> List[Individual]:
    return rank(population)[:count]


def tournament_select(
    population: List[Individual],
    tournament_size: int,
    rng: random.Random,
) -> Individual:
    """Draw contestants with replacement and return the fittest."""
    contestants = [rng.choice(population) for _ in range(tournament_size)]
    return rank(contestants)[0]


def uniform_crossover(
    parent1: Individual,
    parent2: Individual,
    rng: random.Random,
) -> ParameterVector:
    """Inherit each gene independently from either parent with equal odds."""
    genes = {}
    for name in ParameterVector.gene_names():
        source = parent1 if rng.random() < 0.5 else parent2
        genes[name] = getattr(source.parameters, name)
    return ParameterVector(**genes)


def mutate(
    parameters: ParameterVector,
    config: GAConfig,
    rng: random.Random,
) -> ParameterVector:
    """Scale each gene by 1 + U(-scale, scale) with probability mutation_rate."""
    genes = parameters.to_dict()
    for name, value in genes.items():
        if rng.random() < config.mutation_rate:
            value *= 1 + rng.uniform(-config.mutation_scale, config.mutation_scale)
            genes[name] = max(config.gene_floor, min(config.gene_ceiling, value))
    return ParameterVector(**genes)


def next_generation(
    evaluated: List[Individual],
    config: GAConfig,
    rng: random.Random,
) -> List[Individual]:
    """Elites carried over unchanged, the rest bred from tournament winners."""
    size = len(evaluated)
    offspring = select_elite(evaluated, elite_count(size, config))

    while len(offspring) < size:
        parent1 = tournament_select(evaluated, config.tournament_size, rng)
        parent2 = tournament_select(evaluated, config.tournament_size, rng)
        child = mutate(uniform_crossover(parent1, parent2, rng), config, rng)
        offspring.append(Individual(parameters=child))

    return offspring


class GeneticAlgorithm:
    """
    Genetic Algorithm optimizer for simulation run parameters.

    Features:
    - Goal-weighted fitness evaluated without simulation
    - Elitism (top 10%, at least 2) so the population best never regresses
    - Tournament selection, uniform crossover, multiplicative mutation
    - Fixed generation count; progress reported every 10th generation
    """

    def __init__(
        self,
        config: GAConfig,
        goals: GoalInput,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.config = config
        self.goals = parse_goals(goals)
        self.rng = rng or random.Random(seed)

        if not self.goals:
            raise OptimizationConfigurationError(
                "At least one optimization goal must be enabled"
            )

        self.population: List[Individual] = []
        self.best_individual: Optional[Individual] = None
        self.history: List[Dict[str, Any]] = []
        self.best_fitness_trace: List[float] = []

    def _track_best(self, evaluated: List[Individual]) -> None:
        for individual in evaluated:
            if self.best_individual is None or individual.fitness > self.best_individual.fitness:
                self.best_individual = individual

    def run(self, callback: Optional[Callable[[int, List[Individual]], bool]] = None) -> OptimizationResult:
        """
        Run the search for the configured number of generations.

        Args:
            callback: Called with (generation, evaluated population); a true
                return value stops the search early

        Returns:
            OptimizationResult with the best-ever individual
        """
        self.population = initial_population(self.config.population_size, self.rng)
        goal_names = sorted(g.value for g in self.goals)

        logger.info(
            f"Starting GA: population={self.config.population_size}, "
            f"generations={self.config.generations}, goals={goal_names}"
        )

        generations_run = 0
        for generation in range(self.config.generations):
            evaluated = evaluate(self.population, self.goals, generation)
            self._track_best(evaluated)
            generations_run = generation + 1

            best_fitness = self.best_individual.fitness if self.best_individual else 0.0
            self.best_fitness_trace.append(best_fitness)

            if generation % self.config.report_every == 0:
                average = (
                    sum(i.fitness for i in evaluated) / len(evaluated)
                    if evaluated else 0.0
                )
                self.history.append({
                    "generation": generation,
                    "best_fitness": best_fitness,
                    "avg_fitness": average,
                })
                logger.info(
                    f"Generation {generation}: best={best_fitness:.4f}, avg={average:.4f}"
                )

            if callback and callback(generation, evaluated):
                logger.info(f"Early stopping at generation {generation}")
                break

            self.population = next_generation(evaluated, self.config, self.rng)

        best_fitness = self.best_individual.fitness if self.best_individual else 0.0
        logger.info(f"GA completed. Best fitness: {best_fitness:.4f}")

        return OptimizationResult(
            best=self.best_individual,
            best_fitness=best_fitness,
            generations=generations_run,
            goals=goal_names,
            history=list(self.history),
            best_fitness_trace=list(self.best_fitness_trace),
        )
