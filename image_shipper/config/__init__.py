"""
Config — Environment-driven settings.
"""

from .settings import GitHubSettings, PollSettings, PullSettings, Settings

__all__ = ["Settings", "GitHubSettings", "PollSettings", "PullSettings"]
