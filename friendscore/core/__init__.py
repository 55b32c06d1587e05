"""
Core utilities: shared exceptions used across the codec, data-access layer,
aggregator and services.
"""
