"""
Configuration System

Manages configuration for GraphenKG with a layered approach.

Configuration Priority (highest to lowest):
    1. Programmatic (passed to GraphenConfig())
    2. Environment variables (GRAPHEN_* prefix)
    3. Config file (GraphenConfig.from_file)
    4. Built-in defaults

Modules:
    settings: GraphenConfig class
"""

from graphen_kg.config.settings import GraphenConfig

__all__ = ["GraphenConfig"]
