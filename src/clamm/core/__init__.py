"""
clamm Core Module

Engine internals plus the ambient pieces they rely on:
- Typed exceptions
- Environment-driven configuration
- Structured logging setup
"""

__all__ = []
