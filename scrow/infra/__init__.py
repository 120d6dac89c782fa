"""Infrastructure layer package."""

from .api import EsploraAPI

__all__ = ["EsploraAPI"]
