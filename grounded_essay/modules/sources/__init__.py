from .registry import SourceRegistry

__all__ = ['SourceRegistry']
