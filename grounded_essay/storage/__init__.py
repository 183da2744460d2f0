from .outline_store import OutlineStore

__all__ = ['OutlineStore']
