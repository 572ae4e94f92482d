"""
lift-analytics: training readiness and progression analytics engine.
"""

__version__ = "0.1.0"
