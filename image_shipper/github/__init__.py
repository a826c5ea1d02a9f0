"""
GitHub Integration — Workflow dispatch and run inspection.
"""

from .client import WorkflowClient

__all__ = ["WorkflowClient"]
