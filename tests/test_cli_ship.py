"""
Tests for the ship command.

Uses Click's CliRunner; the GitHub client, monotonic clock, and
cancellation token are swapped for in-memory fakes.
"""

from __future__ import annotations

import json
import logging
import signal
from datetime import datetime, timezone
from unittest import mock

import pytest
from click.testing import CliRunner

from image_shipper.cli.ship import cancel_on_signals
from image_shipper.errors import TriggerFailed
from image_shipper.main import cli
from image_shipper.shipping.poller import CancellationToken

from conftest import FakeClock, FakeToken, FakeWorkflowClient


CREDENTIALS = {
    "IMGSHIPPER_GITHUB_TOKEN": "ghp_test",
    "IMGSHIPPER_GITHUB_OWNER": "acme",
}

COMPOSE = "services:\n  web:\n    image: nginx:latest\n  cache:\n    image: redis\n"


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fakes(clean_env):
    """Patch the client factory, clock, and token used by ``ship``."""
    gh = FakeWorkflowClient()
    clock = FakeClock()
    tokens = []

    def make_token():
        token = FakeToken(clock)
        tokens.append(token)
        return token

    with mock.patch("image_shipper.cli.ship.WorkflowClient") as client_cls, \
            mock.patch("image_shipper.cli.ship.monotonic", clock), \
            mock.patch("image_shipper.cli.ship.CancellationToken", side_effect=make_token):
        client_cls.from_settings.return_value = gh
        yield gh, client_cls, tokens


def _run(args: list, env: dict | None = None):
    runner = CliRunner()
    return runner.invoke(cli, args, env=CREDENTIALS if env is None else env, catch_exceptions=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TestShip:

    def test_single_image_success(self, fakes):
        gh, client_cls, _ = fakes
        gh.add_run(55, _now(), status="completed", conclusion="success")

        result = _run(["ship", "nginx:latest"])

        assert result.exit_code == 0, result.output
        assert gh.dispatches == [{"ref": "main", "inputs": {"docker_image": "nginx:latest"}}]
        assert "Workflow triggered, request ID:" in result.output
        assert "✅ Mirror succeeded (https://github.com/acme/image-shipper/actions/runs/55)" in result.output
        assert "📊 Summary: 1 succeeded, 0 failed" in result.output
        assert gh.closed

    def test_settings_reach_client(self, fakes):
        gh, client_cls, _ = fakes
        gh.add_run(1, _now(), status="completed", conclusion="success")

        result = _run(["ship", "nginx"], env={**CREDENTIALS, "IMGSHIPPER_GITHUB_REPO": "mirror"})

        github = client_cls.from_settings.call_args.args[0]
        assert github.owner == "acme"
        assert github.repo == "mirror"
        assert "with image-shipper.yaml in acme/mirror on main" in result.output

    def test_remote_failure_exits_one(self, fakes):
        gh, _, _ = fakes
        gh.add_run(2, _now(), status="completed", conclusion="failure")

        result = _run(["ship", "nginx"])

        assert result.exit_code == 1
        assert "❌ Mirror failed: failure" in result.output

    def test_trigger_failure_exits_one(self, fakes):
        gh, _, _ = fakes
        gh.dispatch_error = TriggerFailed("HTTP 404: Not Found", status_code=404)

        result = _run(["ship", "nginx"])

        assert result.exit_code == 1
        assert "❌ Failed to trigger workflow: HTTP 404: Not Found" in result.output

    def test_manifest_batch(self, fakes, tmp_path):
        gh, _, _ = fakes
        gh.add_run(3, _now(), status="completed", conclusion="success")
        gh.dispatch_errors["redis"] = TriggerFailed("HTTP 422: bad input", status_code=422)
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text(COMPOSE)

        result = _run(["ship", "-f", str(manifest)])

        assert result.exit_code == 1
        assert "Images found in" in result.output
        assert "[1/2] nginx:latest" in result.output
        assert "[2/2] redis" in result.output
        assert "📊 Summary: 1 succeeded, 1 failed" in result.output

    def test_json_report(self, fakes):
        gh, _, _ = fakes
        gh.add_run(4, _now(), status="completed", conclusion="success")

        result = _run(["ship", "nginx", "--json"])

        report = json.loads(result.output[result.output.index("{"):])
        assert report["succeeded"] == 1
        assert report["images"][0]["image"] == "nginx"

    def test_cancelled_batch_exits_one(self, fakes, tmp_path):
        gh, _, tokens = fakes
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text(COMPOSE)

        def cancel_after_first_dispatch(original=gh.dispatch):
            def dispatch(ref, inputs):
                original(ref, inputs)
                tokens[0].cancel()
            return dispatch

        gh.dispatch = cancel_after_first_dispatch()

        result = _run(["ship", "-f", str(manifest)])

        assert result.exit_code == 1
        assert len(gh.dispatches) == 1
        assert "🛑 Interrupted, polling stopped" in result.output
        assert "(cancelled)" in result.output


class TestShipWithoutTriggering:

    def test_dry_run(self, fakes, tmp_path):
        gh, client_cls, _ = fakes
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text(COMPOSE)

        result = _run(["ship", "-f", str(manifest), "--dry-run"], env={})

        assert result.exit_code == 0
        assert "  1. nginx:latest" in result.output
        assert "  2. redis" in result.output
        assert "2 image(s) would be mirrored" in result.output
        client_cls.from_settings.assert_not_called()

    def test_empty_manifest(self, fakes, tmp_path):
        _, client_cls, _ = fakes
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text("services:\n  app:\n    build: .\n")

        result = _run(["ship", "-f", str(manifest)])

        assert result.exit_code == 0
        assert "No images found" in result.output
        assert "📊 Summary: 0 succeeded, 0 failed" in result.output
        client_cls.from_settings.assert_not_called()

    def test_empty_manifest_json_report(self, fakes, tmp_path):
        _, client_cls, _ = fakes
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text("services:\n  app:\n    build: .\n")

        result = _run(["ship", "-f", str(manifest), "--json"], env={})

        report = json.loads(result.output[result.output.index("{"):])
        assert result.exit_code == 0
        assert report == {"succeeded": 0, "failed": 0, "cancelled": False, "exit_code": 0, "images": []}
        client_cls.from_settings.assert_not_called()

    def test_unparseable_manifest(self, fakes, tmp_path):
        manifest = tmp_path / "notes.yaml"
        manifest.write_text("just: text\n")

        result = _run(["ship", "-f", str(manifest)])

        assert result.exit_code == 1
        assert "Failed to parse" in result.output

    def test_invalid_reference(self, fakes):
        _, client_cls, _ = fakes

        result = _run(["ship", "nginx:"])

        assert result.exit_code == 1
        assert "invalid image reference" in result.output
        client_cls.from_settings.assert_not_called()

    def test_missing_credentials(self, fakes):
        _, client_cls, _ = fakes

        result = _run(["ship", "nginx"], env={})

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert "IMGSHIPPER_GITHUB_TOKEN" in result.output
        client_cls.from_settings.assert_not_called()

    def test_image_and_file_conflict(self, fakes, tmp_path):
        manifest = tmp_path / "docker-compose.yaml"
        manifest.write_text(COMPOSE)

        result = _run(["ship", "nginx", "-f", str(manifest)])

        assert result.exit_code == 2
        assert "not both" in result.output

    def test_nothing_to_ship(self, fakes):
        result = _run(["ship"])

        assert result.exit_code == 2
        assert "Missing IMAGE or --file" in result.output


class TestCancelOnSignals:

    def test_sigint_cancels_and_handler_restored(self):
        token = CancellationToken()
        before = signal.getsignal(signal.SIGINT)

        with cancel_on_signals(token):
            signal.raise_signal(signal.SIGINT)

        assert token.cancelled
        assert signal.getsignal(signal.SIGINT) is before

    def test_sigterm_cancels(self):
        token = CancellationToken()

        with cancel_on_signals(token):
            signal.raise_signal(signal.SIGTERM)

        assert token.cancelled


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "image-shipper" in result.output
