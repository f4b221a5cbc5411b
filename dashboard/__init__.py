"""
Dashboard Package.

HTTP surface for the benchmark harness.

Modules:
- main: FastAPI application factory
- routers/benchmarks: strategy runs and recommendations
- schemas: response models
"""
