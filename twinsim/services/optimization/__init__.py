"""
Optimization Service Layer - Genetic algorithm search over run parameters.
"""

from .genetic_algorithm import (
    GeneticAlgorithm,
    GAConfig,
    Individual,
    OptimizationGoal,
    OptimizationResult,
    ParameterVector,
    PARAMETER_BOUNDS,
    parse_goals,
)

__all__ = [
    'GeneticAlgorithm',
    'GAConfig',
    'Individual',
    'OptimizationGoal',
    'OptimizationResult',
    'ParameterVector',
    'PARAMETER_BOUNDS',
    'parse_goals',
]
