"""Composition root for wiring dependencies.

This package centralizes infrastructure-aware wiring so the application
layer can depend on ports without importing infrastructure directly.
"""

from counsel.bootstrap.engine import Engine, build_engine

__all__: list[str] = ["Engine", "build_engine"]
