"""Evidence-grounded essay planning, paragraph expansion and assembly."""

__version__ = '0.1.0'
