"""
Manifest Images — Extract image references from compose and Kubernetes YAML.

Two shapes are recognised:

1. **Compose**: a mapping with a ``services`` mapping; each service's
   ``image`` is collected, build-only services are skipped.
2. **Kubernetes**: one or more YAML documents carrying ``apiVersion`` and
   ``kind``; images come from pod specs wherever they are nested
   (Pod, Deployment/StatefulSet/DaemonSet/Job templates, CronJob job
   templates, and ``List`` items).

## Usage

    from image_shipper.images.manifest import extract_images

    images = extract_images("docker-compose.yaml")
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from ..errors import ManifestParseError

logger = logging.getLogger(__name__)

CONTAINER_LISTS = ("containers", "initContainers", "ephemeralContainers")


class ManifestKind(str, Enum):
    UNKNOWN = "unknown"
    COMPOSE = "compose"
    K8S = "k8s"


def detect_kind(path: Union[str, Path]) -> ManifestKind:
    """Guess the manifest kind from a file name."""
    name = Path(path).name.lower()
    if "compose" in name:
        return ManifestKind.COMPOSE
    if any(hint in name for hint in ("k8s", "kubernetes", "istio")):
        return ManifestKind.K8S
    return ManifestKind.UNKNOWN


def _unique(images: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for image in images:
        if image not in seen:
            seen.add(image)
            ordered.append(image)
    return ordered


# ── Compose ──────────────────────────────────────────────────────────


def parse_compose(content: str) -> List[str]:
    """Extract service images from a compose document."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Invalid YAML: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("services"), dict):
        raise ManifestParseError("No 'services' mapping found")

    images = []
    for name, service in data["services"].items():
        if not isinstance(service, dict):
            continue
        image = service.get("image")
        if isinstance(image, str) and image:
            images.append(image)
        elif service.get("build"):
            logger.info(f"Service {name} is built locally, skipping")

    return _unique(images)


# ── Kubernetes ───────────────────────────────────────────────────────


def _images_from_containers(containers: Any) -> List[str]:
    if not isinstance(containers, list):
        return []
    return [
        c["image"]
        for c in containers
        if isinstance(c, dict) and isinstance(c.get("image"), str) and c["image"]
    ]


def _images_from_spec(spec: Dict[str, Any]) -> List[str]:
    images: List[str] = []
    for key in CONTAINER_LISTS:
        images.extend(_images_from_containers(spec.get(key)))

    # Workload template (Deployment, StatefulSet, DaemonSet, Job, ...)
    template = spec.get("template")
    if isinstance(template, dict) and isinstance(template.get("spec"), dict):
        images.extend(_images_from_spec(template["spec"]))

    # CronJob
    job_template = spec.get("jobTemplate")
    if isinstance(job_template, dict) and isinstance(job_template.get("spec"), dict):
        images.extend(_images_from_spec(job_template["spec"]))

    return images


def _images_from_resource(doc: Dict[str, Any]) -> List[str]:
    if doc.get("kind") == "List" and isinstance(doc.get("items"), list):
        images: List[str] = []
        for item in doc["items"]:
            if isinstance(item, dict):
                images.extend(_images_from_resource(item))
        return images

    spec = doc.get("spec")
    if isinstance(spec, dict):
        return _images_from_spec(spec)
    return []


def parse_k8s(content: str) -> List[str]:
    """Extract container images from a (multi-document) Kubernetes manifest."""
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Invalid YAML: {e}")

    images: List[str] = []
    resources = 0
    for index, doc in enumerate(docs):
        if doc is None:
            continue
        if not isinstance(doc, dict) or "apiVersion" not in doc or "kind" not in doc:
            logger.warning(f"Document {index} is not a Kubernetes resource, skipping")
            continue
        resources += 1
        images.extend(_images_from_resource(doc))

    if not resources:
        raise ManifestParseError("No valid Kubernetes resources found")

    return _unique(images)


# ── Entry points ─────────────────────────────────────────────────────


def extract_images_from_text(
    content: str,
    kind: ManifestKind = ManifestKind.UNKNOWN,
) -> List[str]:
    """
    Extract images from raw manifest text.

    ``kind`` only chooses which shape is tried first; the other shape is
    always tried as a fallback.

    Raises:
        ManifestParseError: if the content matches neither shape.
    """
    order = [parse_compose, parse_k8s]
    if kind == ManifestKind.K8S:
        order.reverse()

    errors = []
    for parser in order:
        try:
            return parser(content)
        except ManifestParseError as e:
            errors.append(e.message)

    raise ManifestParseError(
        "Content is neither a compose file nor a Kubernetes manifest",
        details={"errors": errors},
    )


def extract_images(path: Union[str, Path], kind: Optional[ManifestKind] = None) -> List[str]:
    """Read a manifest file and extract its images."""
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestParseError(f"Cannot read {file_path}: {e}")

    return extract_images_from_text(content, kind or detect_kind(file_path))
