"""
TwinSim Test Suite.
"""
