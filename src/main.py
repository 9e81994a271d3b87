# src/main.py — v1
"""CLI entry point - create command.

Usage:
    ibu-imager create --registry <ref> [--authfile <path>] [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ibuimager.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ibu-imager",
        description=f"ibu-imager v{__version__} - image-based upgrade seed image creator",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- create ---
    p_create = subparsers.add_parser(
        "create", help="Create OCI image and push it to a container registry.",
    )
    p_create.add_argument(
        "-a", "--authfile", type=Path, default=None,
        help="The path to the authentication file of the container registry "
             "(default: /var/lib/kubelet/config.json)",
    )
    p_create.add_argument(
        "-r", "--registry", default="",
        help="The container registry used to push the OCI image.",
    )
    p_create.add_argument(
        "-t", "--tag", default=None,
        help="Tag of the OCI image (default: oneimage)",
    )
    p_create.add_argument(
        "--recert-image", default=None,
        help="recert container image used for the dry-run pre-check",
    )
    p_create.add_argument(
        "--skip-recert", action="store_true",
        help="Skip the recert dry-run pre-check",
    )
    p_create.add_argument(
        "--backup-dir", type=Path, default=None,
        help="Backup directory (default: /var/tmp/backup)",
    )
    p_create.add_argument(
        "--kubeconfig", type=Path, default=None,
        help="kubeconfig used to query the cluster",
    )
    p_create.set_defaults(func=_cmd_create)

    return parser


async def _cmd_create(args: argparse.Namespace) -> int:
    """Execute seed image creation."""
    from ibuimager.api.facade import create_seed_image
    from ibuimager.config.settings import load_settings
    from ibuimager.core.models import SeedImageRef

    settings = load_settings(
        auth_file=args.authfile,
        backup_tag=args.tag,
        recert_image=args.recert_image,
        recert_enabled=False if args.skip_recert else None,
        backup_dir=args.backup_dir,
        kubeconfig=args.kubeconfig,
    )
    _setup_logging(args.verbose, settings)

    image_ref = SeedImageRef(registry=args.registry, tag=settings.backup_tag)
    result = await create_seed_image(image_ref, settings=settings)
    if result.image:
        _print_result_summary(result)
    return 0


def _print_result_summary(result: object) -> None:
    """Print a human-readable summary of RunResult."""
    print("\nSeed image created:")
    print(f"  Image:     {result.image}")
    print(f"  Executed:  {', '.join(result.executed_stages) or '-'}")
    print(f"  Skipped:   {', '.join(result.skipped_stages) or '-'}")
    print(f"  Duration:  {result.duration_ms / 1000:.1f}s")


def _setup_logging(verbose: bool, settings: object | None = None) -> None:
    """Configure logging for CLI usage."""
    from ibuimager.logging.logger import setup_logging

    level = "DEBUG" if verbose else getattr(settings, "log_level", "INFO")
    log_file = getattr(settings, "log_file", None)
    setup_logging(
        level=level,
        log_format=getattr(settings, "log_format", "text"),
        log_file=str(log_file) if log_file else None,
        rotation=getattr(settings, "log_rotation", "10MB"),
        retention=getattr(settings, "log_retention", 5),
    )


if __name__ == "__main__":
    sys.exit(main())
