"""
Unit tests for individual accumulator components.
"""
