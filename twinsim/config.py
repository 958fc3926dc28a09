"""
Simulation Engine Configuration
"""

import os


class Config:
    """Base configuration."""

    # Simulated clock: one step is one hour
    TIME_STEP_SECONDS = 3600

    # Twin defaults when a configuration record omits them
    DEFAULT_PRODUCTION_CAPACITY = float(os.environ.get("TWINSIM_DEFAULT_CAPACITY", 1000))
    DEFAULT_EFFICIENCY = float(os.environ.get("TWINSIM_DEFAULT_EFFICIENCY", 0.8))
    DEFAULT_MANNING_LEVEL = int(os.environ.get("TWINSIM_DEFAULT_MANNING_LEVEL", 10))

    # Random source; None means unseeded
    RANDOM_SEED = (
        int(os.environ["TWINSIM_RANDOM_SEED"])
        if os.environ.get("TWINSIM_RANDOM_SEED")
        else None
    )

    # Genetic algorithm defaults
    GA_POPULATION_SIZE = int(os.environ.get("TWINSIM_GA_POPULATION", 50))
    GA_GENERATIONS = int(os.environ.get("TWINSIM_GA_GENERATIONS", 100))
    GA_MUTATION_RATE = float(os.environ.get("TWINSIM_GA_MUTATION_RATE", 0.1))

    # Baseline window for twin creation (most recent daily records)
    BASELINE_WINDOW_DAYS = 30


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""

    DEBUG = True
    TESTING = True
    RANDOM_SEED = 42
    GA_POPULATION_SIZE = 20
    GA_GENERATIONS = 30


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config():
    """Get configuration based on environment."""
    env = os.environ.get("TWINSIM_ENV", "development")
    return config.get(env, config["default"])
