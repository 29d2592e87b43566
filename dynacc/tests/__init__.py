"""
Test package for the dynamic accumulator.
"""
