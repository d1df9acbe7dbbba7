"""
Loft Handlers - Input handling.
"""
from .commands import CommandReader

__all__ = ['CommandReader']
