"""
Settings — Parse IMGSHIPPER_* environment variables.

Minimal required config for ``ship``:
    IMGSHIPPER_GITHUB_TOKEN=ghp_xxxxx
    IMGSHIPPER_GITHUB_OWNER=my-account

Everything else has a default. ``pull`` needs no GitHub credentials.
Setting TEST_ENV=true skips credential validation.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "IMGSHIPPER_"

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REPO = "image-shipper"
DEFAULT_WORKFLOW = "image-shipper.yaml"
DEFAULT_REF = "main"
DEFAULT_SOURCE_REGISTRY = "docker.io/library"
DEFAULT_RUNTIME = "docker"


@dataclass
class GitHubSettings:
    """Where the mirror workflow lives and how to reach it."""

    token: Optional[str] = None
    owner: Optional[str] = None
    repo: str = DEFAULT_REPO
    workflow: str = DEFAULT_WORKFLOW
    ref: str = DEFAULT_REF
    api_url: str = DEFAULT_API_URL

    @property
    def full_repo(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class PollSettings:
    """Timing for the status poller and the run matcher."""

    interval_seconds: int = 10
    timeout_seconds: int = 30 * 60
    tolerance_seconds: int = 5 * 60


@dataclass
class PullSettings:
    """Defaults for the local re-tag path."""

    source_registry: str = DEFAULT_SOURCE_REGISTRY
    container_runtime: str = DEFAULT_RUNTIME


@dataclass
class Settings:
    """All image-shipper settings."""

    github: GitHubSettings = field(default_factory=GitHubSettings)
    poll: PollSettings = field(default_factory=PollSettings)
    pull: PullSettings = field(default_factory=PullSettings)
    test_mode: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables (defaults for anything unset)."""
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}", "").strip()
            return value or default

        def get_int(name: str, default: int) -> int:
            raw = get(name)
            if raw is None:
                return default
            try:
                value = int(raw)
            except ValueError:
                raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got: {raw}")
            if value <= 0:
                raise ConfigurationError(f"{ENV_PREFIX}{name} must be positive, got: {value}")
            return value

        github = GitHubSettings(
            token=get("GITHUB_TOKEN"),
            owner=get("GITHUB_OWNER"),
            repo=get("GITHUB_REPO", DEFAULT_REPO),
            workflow=get("GITHUB_WORKFLOW", DEFAULT_WORKFLOW),
            ref=get("GITHUB_REF", DEFAULT_REF),
            api_url=get("GITHUB_API_URL", DEFAULT_API_URL).rstrip("/"),
        )
        poll = PollSettings(
            interval_seconds=get_int("POLL_INTERVAL_SECONDS", 10),
            timeout_seconds=get_int("POLL_TIMEOUT_SECONDS", 30 * 60),
            tolerance_seconds=get_int("MATCH_TOLERANCE_SECONDS", 5 * 60),
        )
        pull = PullSettings(
            source_registry=get("PULL_SOURCE_REGISTRY", DEFAULT_SOURCE_REGISTRY).rstrip("/"),
            container_runtime=get("PULL_CONTAINER_RUNTIME", DEFAULT_RUNTIME),
        )

        return cls(
            github=github,
            poll=poll,
            pull=pull,
            test_mode=env.get("TEST_ENV", "").lower() == "true",
        )

    def missing_github(self) -> List[str]:
        """Names of required GitHub variables that are not set."""
        required = {
            "GITHUB_TOKEN": self.github.token,
            "GITHUB_OWNER": self.github.owner,
            "GITHUB_REPO": self.github.repo,
            "GITHUB_WORKFLOW": self.github.workflow,
        }
        return [f"{ENV_PREFIX}{name}" for name, value in required.items() if not value]

    def validate(self) -> None:
        """
        Fail fast when the GitHub credentials needed by ``ship`` are missing.

        Raises:
            ConfigurationError: listing every missing variable.
        """
        if self.test_mode:
            logger.debug("TEST_ENV=true, skipping GitHub config validation")
            return

        missing = self.missing_github()
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing},
            )
