"""
Batch Driver — Ship a list of images one at a time.

Per image: validate the reference, trigger the workflow, poll to a terminal
state. A failed image never stops the batch; a cancellation always does.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..errors import InvalidReference, TriggerFailed
from ..images.reference import parse_image_reference
from ..models.outcome import BatchReport, ImageOutcome
from .correlator import Correlator
from .poller import Poller, ProgressRenderer

logger = logging.getLogger(__name__)


def summary_line(report: BatchReport) -> str:
    line = f"📊 Summary: {report.succeeded} succeeded, {report.failed} failed"
    if report.cancelled:
        line += " (cancelled)"
    return line


class BatchDriver:
    """Sequence trigger + poll over an ordered list of images."""

    def __init__(
        self,
        correlator: Correlator,
        poller: Poller,
        renderer: Optional[ProgressRenderer] = None,
        target_registry: str = "",
    ):
        self.correlator = correlator
        self.poller = poller
        self.renderer = renderer or poller.renderer
        self.token = poller.token
        self.target_registry = target_registry

    def ship_one(self, image: str) -> ImageOutcome:
        """Trigger and poll a single image."""
        try:
            parse_image_reference(image)
        except InvalidReference as e:
            self.renderer.line(f"❌ Skipping {image}: {e}")
            return ImageOutcome(image=image, ok=False, error=str(e))

        self.renderer.line(f"Triggering mirror workflow for {image}")
        try:
            request = self.correlator.trigger(image, self.target_registry)
        except TriggerFailed as e:
            logger.error(f"Trigger failed: {e}", extra={"image": image})
            self.renderer.line(f"❌ Failed to trigger workflow: {e}")
            return ImageOutcome(image=image, ok=False, error=str(e))

        self.renderer.line(f"Workflow triggered, request ID: {request.id}")
        result = self.poller.poll(request)
        return ImageOutcome(
            image=image,
            ok=result.ok,
            state=result.state,
            error=None if result.ok else result.state.value,
            request_id=request.id,
            url=result.url,
        )

    def run(self, images: Iterable[str]) -> BatchReport:
        """Ship every image in order and return the tally."""
        queue: List[str] = list(images)
        report = BatchReport()

        for index, image in enumerate(queue, start=1):
            # Checked before every trigger: a signal may land between polls
            if self.token.cancelled:
                break

            self.renderer.line(f"\n[{index}/{len(queue)}] {image}")
            report.outcomes.append(self.ship_one(image))

        if self.token.cancelled:
            report.cancelled = True
            skipped = len(queue) - len(report.outcomes)
            if skipped:
                logger.warning(f"Batch cancelled, {skipped} image(s) not attempted")

        self.renderer.line(summary_line(report))
        return report
