"""
Infrastructure orchestration for Kilnbook.

Module Contents
---------------
- StudioContext: wires the cache stack and data access, and owns the
  database/Redis lifecycle
- build_store: key/value store selection from ``Config``
"""

from src.core.infra.application_context import StudioContext, build_store

__all__ = ["StudioContext", "build_store"]
