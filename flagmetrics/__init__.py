"""
Client metrics aggregation service for feature flags.
"""

__version__ = "0.1.0"
