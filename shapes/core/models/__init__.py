"""
Domain models — Pydantic types for shapes configuration.

    from shapes.core.models import RepositoryInfo, ShapesConfig
"""

from shapes.core.models.repository import RepositoryInfo, ShapesConfig

__all__ = [
    "RepositoryInfo",
    "ShapesConfig",
]
