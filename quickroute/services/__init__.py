"""Planning pipeline: provider adapters, ETA cache, matrix and leg builders."""

from __future__ import annotations

from .route_planner import RoutePlanner

__all__ = ["RoutePlanner"]
