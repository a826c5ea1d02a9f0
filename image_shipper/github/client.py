"""
GitHub Workflow Client — Dispatch and inspect GitHub Actions runs.

Thin wrapper over three REST endpoints:

- POST /repos/{owner}/{repo}/actions/workflows/{workflow}/dispatches
- GET  /repos/{owner}/{repo}/actions/workflows/{workflow}/runs
- GET  /repos/{owner}/{repo}/actions/runs/{run_id}

A dispatch answers 204 with an empty body. GitHub hands back no run id,
which is why the correlator exists.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config.settings import DEFAULT_API_URL, GitHubSettings
from ..errors import LookupTransportError, TriggerFailed

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15
USER_AGENT = "image-shipper/1.0"


def _get_headers(token: Optional[str]) -> Dict[str, str]:
    """Get GitHub API headers."""
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class WorkflowClient:
    """
    Client for one workflow file in one repository.

    Pass ``transport`` to route requests somewhere other than the network
    (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: Optional[str],
        owner: str,
        repo: str,
        workflow: str,
        api_base: str = DEFAULT_API_URL,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.owner = owner
        self.repo = repo
        self.workflow = workflow
        self.api_base = api_base.rstrip("/")
        self._http = httpx.Client(
            base_url=self.api_base,
            headers=_get_headers(token),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: GitHubSettings, **kwargs: Any) -> "WorkflowClient":
        return cls(
            token=settings.token,
            owner=settings.owner or "",
            repo=settings.repo,
            workflow=settings.workflow,
            api_base=settings.api_url,
            **kwargs,
        )

    def __enter__(self) -> "WorkflowClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    @property
    def _workflow_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/actions/workflows/{self.workflow}"

    def dispatch(self, ref: str, inputs: Dict[str, Any]) -> None:
        """
        Trigger a workflow_dispatch event.

        Raises:
            TriggerFailed: on a non-204 answer or a transport error.
        """
        url = f"{self._workflow_path}/dispatches"
        try:
            resp = self._http.post(url, json={"ref": ref, "inputs": inputs})
        except httpx.HTTPError as e:
            logger.error(f"[github] Dispatch of {self.workflow} failed: {e}")
            raise TriggerFailed(f"Dispatch failed: {e}")

        if resp.status_code != 204:
            logger.error(f"[github] Dispatch of {self.workflow} rejected: HTTP {resp.status_code}")
            raise TriggerFailed(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        logger.debug(f"[github] Dispatched {self.workflow} on {ref}")

    def list_recent_runs(
        self,
        event: str = "workflow_dispatch",
        per_page: int = 10,
    ) -> List[Dict[str, Any]]:
        """
        List the workflow's runs for ``event``, newest first.

        Raises:
            LookupTransportError: on a non-200 answer or a transport error.
        """
        data = self._get_json(
            f"{self._workflow_path}/runs",
            params={"event": event, "per_page": per_page},
        )
        return list(data.get("workflow_runs") or [])

    def get_run_detail(self, run_id: int) -> Dict[str, Any]:
        """
        Fetch a single run.

        Raises:
            LookupTransportError: on a non-200 answer or a transport error.
        """
        return self._get_json(f"/repos/{self.owner}/{self.repo}/actions/runs/{run_id}")

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self._http.get(url, params=params)
        except httpx.HTTPError as e:
            raise LookupTransportError(f"GET {url} failed: {e}")

        if resp.status_code != 200:
            raise LookupTransportError(
                f"GET {url}: HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise LookupTransportError(f"GET {url}: invalid JSON: {e}")
