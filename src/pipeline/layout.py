# src/pipeline/layout.py — v1
"""Backup directory structure definition.

Every file here doubles as the completion marker of the stage that
writes it. The inventory marker lives outside the backup directory so it
is not packaged into the seed image.
"""

from __future__ import annotations

from pathlib import Path

CONTAINERS_LIST = "containers.list"
CATALOG_IMAGES_LIST = "catalogimages.list"
CLUSTER_VERSION = "clusterversion.json"
VAR_ARCHIVE = "var.tgz"
ETC_ARCHIVE = "etc.tgz"
ETC_DELETIONS = "etc.deletions"
OSTREE_ARCHIVE = "ostree.tgz"
RPM_OSTREE_STATUS = "rpm-ostree.json"
MCO_CURRENT_CONFIG = "mco-currentconfig.json"
RECERT_SUMMARY = "recert.summary"


def containers_list_path(backup_dir: Path) -> Path:
    return backup_dir / CONTAINERS_LIST


def catalog_images_path(backup_dir: Path) -> Path:
    return backup_dir / CATALOG_IMAGES_LIST


def cluster_version_path(backup_dir: Path) -> Path:
    return backup_dir / CLUSTER_VERSION


def var_archive_path(backup_dir: Path) -> Path:
    return backup_dir / VAR_ARCHIVE


def etc_archive_path(backup_dir: Path) -> Path:
    return backup_dir / ETC_ARCHIVE


def etc_deletions_path(backup_dir: Path) -> Path:
    return backup_dir / ETC_DELETIONS


def ostree_archive_path(backup_dir: Path) -> Path:
    return backup_dir / OSTREE_ARCHIVE


def rpm_ostree_status_path(backup_dir: Path) -> Path:
    return backup_dir / RPM_OSTREE_STATUS


def mco_config_path(backup_dir: Path) -> Path:
    return backup_dir / MCO_CURRENT_CONFIG


def recert_summary_path(backup_dir: Path) -> Path:
    return backup_dir / RECERT_SUMMARY


def origin_path(backup_dir: Path, commit: str) -> Path:
    """Backed-up ``.origin`` file of the booted deployment ``commit``."""
    return backup_dir / f"ostree-{commit}.origin"


def deployment_origin_source(deploy_root: Path, osname: str, commit: str) -> Path:
    """Host ``.origin`` file of a deployment under the OS-tree deploy root."""
    return deploy_root / osname / "deploy" / f"{commit}.origin"


def ensure_backup_dir(backup_dir: Path) -> None:
    """Create the backup directory (owner-only) if missing."""
    backup_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
