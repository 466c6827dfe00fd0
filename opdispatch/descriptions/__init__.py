"""Template-driven operation descriptions."""

from .description_engine import DescriptionEngine

__all__ = ['DescriptionEngine']
