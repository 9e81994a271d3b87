# src/recert/etcd_manifest.py — v1
"""Resolve the etcd container image from the etcd static pod manifest."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from ibuimager.core.models import EtcdPodSpec

logger = logging.getLogger(__name__)

ETCD_CONTAINER_NAME = "etcd"


class EtcdImageNotFoundError(Exception):
    """The manifest is unreadable or has no etcd container with an image."""


def find_container(pod: Any, name: str = ETCD_CONTAINER_NAME) -> EtcdPodSpec:
    """Return the container called ``name`` from a parsed pod document.

    Raises:
        EtcdImageNotFoundError: If no container matches or it has no image.
    """
    spec = pod.get("spec") if isinstance(pod, dict) else None
    containers = spec.get("containers") if isinstance(spec, dict) else None
    if not isinstance(containers, list):
        raise EtcdImageNotFoundError("Pod manifest has no spec.containers list")

    for container in containers:
        if not isinstance(container, dict) or container.get("name") != name:
            continue
        image = container.get("image")
        if isinstance(image, str) and image:
            return EtcdPodSpec(container_name=name, image=image)
        raise EtcdImageNotFoundError(f"Container {name!r} has no image field")

    raise EtcdImageNotFoundError(f"{name} container image not found in the manifest")


def get_etcd_image(manifest_path: Path) -> str:
    """Read ``manifest_path`` and return the etcd container image reference."""
    try:
        pod = yaml.safe_load(Path(manifest_path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise EtcdImageNotFoundError(
            f"Error reading etcd static pod definition {manifest_path}: {exc}"
        ) from exc
    except yaml.YAMLError as exc:
        raise EtcdImageNotFoundError(
            f"Error parsing etcd static pod definition {manifest_path}: {exc}"
        ) from exc

    image = find_container(pod).image
    logger.debug("etcd image resolved to %s", image)
    return image
