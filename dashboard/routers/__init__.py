"""
Dashboard API Routers.
"""
from . import benchmarks

__all__ = ["benchmarks"]
