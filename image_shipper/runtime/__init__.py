"""
Runtime — Local container runtime commands.
"""

from .executor import RetagResult, RuntimeExecutor

__all__ = ["RuntimeExecutor", "RetagResult"]
