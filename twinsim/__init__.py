"""
TwinSim - Production Twin Simulation Engine

Discrete-time simulation of virtual production-line replicas and
genetic-algorithm search over simulation input parameters.
"""

__version__ = "1.0.0"
