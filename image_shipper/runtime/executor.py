"""
Runtime Executor — Pull and re-tag images with a local container runtime.

The runtime may be a multi-word command (``"k3s crictl"``,
``"sudo podman"``); it is split shell-style and the subcommand appended.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional

from ..errors import InvalidReference, RuntimeCommandError
from ..images.reference import with_default_tag

logger = logging.getLogger(__name__)

DEFAULT_RUNTIME = "docker"


@dataclass
class RetagResult:
    """Outcome of pulling and re-tagging one image."""

    image: str
    ok: bool
    source: Optional[str] = None
    error: Optional[str] = None


class RuntimeExecutor:
    """Run ``pull``/``tag``/``rmi`` through a container runtime CLI."""

    def __init__(self, runtime: str = DEFAULT_RUNTIME, timeout: Optional[int] = None):
        self.command = shlex.split(runtime) or [DEFAULT_RUNTIME]
        self.timeout = timeout

    @property
    def runtime(self) -> str:
        return " ".join(self.command)

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [*self.command, *args]
        logger.info(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, timeout=self.timeout)
        except FileNotFoundError:
            raise RuntimeCommandError(f"{self.command[0]} not found", command=cmd)
        except subprocess.TimeoutExpired:
            raise RuntimeCommandError(f"{' '.join(cmd)} timed out after {self.timeout}s", command=cmd)

    def _run_checked(self, action: str, *args: str) -> None:
        result = self._run(*args)
        if result.returncode != 0:
            raise RuntimeCommandError(
                f"{action} failed (exit {result.returncode})",
                command=[*self.command, *args],
                returncode=result.returncode,
            )

    def pull(self, image: str) -> None:
        self._run_checked("pull", "pull", image)

    def tag(self, source: str, target: str) -> None:
        self._run_checked("tag", "tag", source, target)

    def remove(self, image: str) -> bool:
        """Remove an image; failures are logged and ignored."""
        try:
            result = self._run("rmi", image)
        except RuntimeCommandError as e:
            logger.debug(f"rmi {image} skipped: {e}")
            return False
        if result.returncode != 0:
            logger.debug(f"rmi {image} exited {result.returncode}, ignoring")
            return False
        return True

    def pull_and_retag(self, source: str, target: str) -> None:
        """
        Pull ``source``, tag it as ``target``, then drop the ``source`` tag.

        Raises:
            RuntimeCommandError: if the pull or the tag fails.
        """
        self.pull(source)
        self.tag(source, target)
        self.remove(source)

    def retag(self, image: str, source_registry: str) -> RetagResult:
        """
        Pull ``image`` from ``source_registry`` and re-tag it under its own name.

        ``nginx`` becomes ``<source_registry>/nginx:latest`` → ``nginx:latest``.
        """
        try:
            target = with_default_tag(image)
        except InvalidReference as e:
            return RetagResult(image=image, ok=False, error=str(e))

        registry = source_registry.rstrip("/")
        source = f"{registry}/{target}" if registry else target
        try:
            self.pull_and_retag(source, target)
        except RuntimeCommandError as e:
            return RetagResult(image=target, ok=False, source=source, error=e.message)
        return RetagResult(image=target, ok=True, source=source)
