# src/pipeline/seed_creator.py — v1
"""Idempotent, checkpointed backup-and-assemble pipeline.

Stages, strictly in order:
  1. inventory       running images, catalog source images, clusterversion
  2. shutdown        kubelet, running containers, CRI-O
  3. recert          dry-run pre-validation against an ephemeral etcd
  4. backup_var      /var archive without volatile paths
  5. backup_etc      /etc changes and deletions vs. the OS-tree commit
  6. backup_ostree   OS-tree repository
  7. backup_rpm_ostree, backup_mco_config   daemon state snapshots
  8. backup_origin   .origin file of the booted deployment
  9. assemble        build and push the seed image

A stage whose output file exists is not run again, so an aborted run is
resumed by invoking the tool again.
"""

from __future__ import annotations

import logging
import shlex
import uuid
from pathlib import Path

from ibuimager.config.settings import Settings
from ibuimager.core.models import SeedImageRef
from ibuimager.logging.context import set_run_context
from ibuimager.ops.base_ops import BaseOps, HostCommandError
from ibuimager.ostree.client import RpmOstreeClient
from ibuimager.pipeline import layout
from ibuimager.pipeline.runner import RunResult, StageRunner
from ibuimager.pipeline.stage import PipelineStage
from ibuimager.recert.validator import RecertValidator
from ibuimager.seed.assembler import SeedImageAssembler

logger = logging.getLogger(__name__)

MISSING_REGISTRY_MESSAGE = (
    " *** Please provide a valid container registry to store the created OCI images *** "
)

# systemctl is-enabled states that start the unit on boot
KUBELET_ENABLED_STATES = ("enabled", "enabled-runtime")

_q = shlex.quote


def publish_script(command: str, dest: Path, redirect: bool = False) -> str:
    """Wrap ``command`` so ``dest`` only appears once it is complete.

    ``command`` writes to ``{part}`` (substituted here) or, with
    ``redirect``, to stdout. The finished file is renamed into place, so a
    crash never leaves a truncated marker behind.
    """
    part = dest.with_name(dest.name + ".partial")
    if redirect:
        body = f"{command} > {_q(str(part))}"
    else:
        body = command.replace("{part}", _q(str(part)))
    return f"set -o pipefail; {body} && mv -f {_q(str(part))} {_q(str(dest))}"


class SeedCreator:
    """Drive every component to produce the seed image.

    Args:
        settings: Resolved configuration.
        image_ref: Destination registry and tag.
        ops: Host execution backend; the only channel to the host.
        ostree_client: rpm-ostree client (built from ``ops`` if None).
        validator: recert pre-check (built from settings if None).
        assembler: Image builder (built from settings if None).
    """

    def __init__(
        self,
        settings: Settings,
        image_ref: SeedImageRef,
        ops: BaseOps,
        ostree_client: RpmOstreeClient | None = None,
        validator: RecertValidator | None = None,
        assembler: SeedImageAssembler | None = None,
    ) -> None:
        self._settings = settings
        self._image_ref = image_ref
        self._ops = ops
        self._ostree = ostree_client or RpmOstreeClient(
            ops, client_id=settings.rpmostree_client_id,
        )
        self._validator = validator or RecertValidator(
            ops,
            recert_image=settings.recert_image,
            etcd_static_pod_file=settings.etcd_static_pod_file,
            etcd_data_dir=settings.etcd_data_dir,
            auth_file=settings.auth_file,
            backup_dir=settings.backup_dir,
            etcd_endpoint=settings.etcd_endpoint,
            ready_timeout_s=settings.etcd_ready_timeout,
            poll_interval_s=settings.etcd_poll_interval,
        )
        self._assembler = assembler or SeedImageAssembler(ops, tmp_dir=settings.tmp_dir)

    @property
    def backup_dir(self) -> Path:
        return self._settings.backup_dir

    @property
    def _tar_selinux(self) -> str:
        return " --selinux" if self._settings.archive_selinux else ""

    def build_stages(self) -> list[PipelineStage]:
        """Return the ordered stage list for this configuration."""
        s = self._settings
        b = self.backup_dir
        stages = [
            PipelineStage(
                "inventory", self.save_inventory, markers=(s.inventory_marker,),
                description="running containers, catalog sources and clusterversion",
            ),
            PipelineStage(
                "shutdown", self.stop_services,
                description="kubelet, running containers and CRI-O",
            ),
        ]
        if s.recert_enabled:
            stages.append(
                PipelineStage(
                    "recert", self.run_recert_dry_run,
                    markers=(layout.recert_summary_path(b),),
                    description="recert dry-run against an ephemeral etcd",
                )
            )
        else:
            logger.warning("recert pre-validation disabled by configuration")
        stages += [
            PipelineStage(
                "backup_var", self.backup_var, markers=(layout.var_archive_path(b),),
                description=f"{s.data_dir} without volatile paths",
            ),
            PipelineStage(
                "backup_etc", self.backup_etc, markers=(layout.etc_archive_path(b),),
                description="/etc changes and deletions",
            ),
            PipelineStage(
                "backup_ostree", self.backup_ostree, markers=(layout.ostree_archive_path(b),),
                description=f"OS-tree repository {s.ostree_repo}",
            ),
            PipelineStage(
                "backup_rpm_ostree", self.backup_rpm_ostree,
                markers=(layout.rpm_ostree_status_path(b),),
                description="rpm-ostree status",
            ),
            PipelineStage(
                "backup_mco_config", self.backup_mco_config,
                markers=(layout.mco_config_path(b),),
                description="machine-config daemon current config",
            ),
            # Marker name depends on the booted commit, checked in the action
            PipelineStage(
                "backup_origin", self.backup_ostree_origin,
                description=".origin file of the booted deployment",
            ),
            PipelineStage(
                "assemble", self.create_and_push_seed_image,
                description=f"build and push {self._image_ref}",
            ),
        ]
        return stages

    async def create_seed_image(self) -> RunResult:
        """Run the whole pipeline.

        An empty registry is an operator error reported without touching
        the host or the filesystem.

        Raises:
            StageFailedError: On the first fatal stage failure.
            OSError: If the backup directory cannot be created.
        """
        if not self._image_ref.is_set:
            print(MISSING_REGISTRY_MESSAGE)
            logger.info("Skipping OCI image creation.")
            return RunResult(success=True)

        set_run_context(uuid.uuid4().hex[:8], str(self._image_ref))
        logger.info("OCI image creation has started")
        layout.ensure_backup_dir(self.backup_dir)

        result = RunResult(image=str(self._image_ref))
        return await StageRunner(self.build_stages()).run(result)

    # --- Stage actions ---

    async def save_inventory(self) -> None:
        # Shared marker: a failure in any of the three re-runs all of them
        s = self._settings
        b = self.backup_dir
        kubeconfig = _q(str(s.kubeconfig))

        logger.info("Save list of running containers")
        await self._ops.run_shell(publish_script(
            "crictl images -o json | jq -r '.images[] | .repoDigests[], .repoTags[]'",
            layout.containers_list_path(b), redirect=True,
        ))

        logger.info("Save catalog source images")
        await self._ops.run_shell(publish_script(
            f"oc get catalogsource -A -o json --kubeconfig {kubeconfig}"
            " | jq -r '.items[].spec.image'",
            layout.catalog_images_path(b), redirect=True,
        ))

        logger.info("Save clusterversion to file")
        await self._ops.run_shell(publish_script(
            f"oc get clusterversion version -o json --kubeconfig {kubeconfig}",
            layout.cluster_version_path(b), redirect=True,
        ))

        s.inventory_marker.parent.mkdir(parents=True, exist_ok=True)
        s.inventory_marker.touch()
        logger.info("List of containers, catalogsources, and clusterversion saved successfully.")

    async def stop_services(self) -> None:
        s = self._settings
        enabled = await self._ops.systemctl("is-enabled", "kubelet.service")
        if enabled in KUBELET_ENABLED_STATES:
            # Leaves no enable link in the /etc backup
            logger.info("Disabling kubelet service")
            await self._ops.systemctl("disable", "kubelet.service")
        else:
            logger.info("Skipping kubelet disable, service is %s", enabled or "unknown")

        kubelet = await self._ops.systemctl("is-active", "kubelet.service")
        if kubelet != "inactive":
            logger.info("Stop kubelet service (%s)", kubelet or "unknown")
            await self._ops.systemctl("stop", "kubelet.service")
        else:
            logger.info("Skipping kubelet stop, service is inactive")

        crio = await self._ops.systemctl("is-active", "crio.service")
        logger.debug("crio status is %s", crio)
        if crio != "active":
            logger.info("Skipping running containers and CRI-O engine already stopped.")
            return

        logger.info("Stop running containers")
        await self._ops.run_shell(
            "crictl ps -q | xargs --no-run-if-empty --max-args 1"
            f" --max-procs {s.container_stop_max_procs}"
            f" crictl stop --timeout {s.container_stop_timeout}"
        )
        logger.debug("Stopping CRI-O engine")
        await self._ops.systemctl("stop", "crio.service")
        logger.info("Running containers and CRI-O engine stopped successfully.")

    async def run_recert_dry_run(self) -> None:
        await self._validator.validate()

    async def backup_var(self) -> None:
        s = self._settings
        excludes = " ".join(f"--exclude {_q(p)}" for p in s.var_exclude_paths)
        await self._ops.run_shell(publish_script(
            f"tar czf {{part}} {excludes}{self._tar_selinux} {_q(str(s.data_dir))}",
            layout.var_archive_path(self.backup_dir),
        ))
        logger.info("Backup of %s created successfully.", s.data_dir)

    async def backup_etc(self) -> None:
        b = self.backup_dir
        await self._ops.run_shell(publish_script(
            """ostree admin config-diff | awk '$1 == "D" {print "/etc/" $2}'""",
            layout.etc_deletions_path(b), redirect=True,
        ))
        await self._ops.run_shell(publish_script(
            """ostree admin config-diff | awk '$1 != "D" {print "/etc/" $2}'"""
            f" | tar czf {{part}}{self._tar_selinux} -T -",
            layout.etc_archive_path(b),
        ))
        logger.info("Backup of /etc created successfully.")

    async def backup_ostree(self) -> None:
        repo = _q(str(self._settings.ostree_repo))
        await self._ops.run_shell(publish_script(
            f"tar czf {{part}}{self._tar_selinux} -C {repo} .",
            layout.ostree_archive_path(self.backup_dir),
        ))
        logger.info("Backup of ostree created successfully.")

    async def backup_rpm_ostree(self) -> None:
        await self._ops.run_shell(
            publish_script(
                "rpm-ostree status -v --json",
                layout.rpm_ostree_status_path(self.backup_dir), redirect=True,
            ),
            env={"RPMOSTREE_CLIENT_ID": self._settings.rpmostree_client_id},
        )
        logger.info("Backup of rpm-ostree.json created successfully.")

    async def backup_mco_config(self) -> None:
        await self._ops.run(
            "cp", str(self._settings.mco_current_config),
            str(layout.mco_config_path(self.backup_dir)),
        )
        logger.info("Backup of mco-currentconfig created successfully.")

    async def backup_ostree_origin(self) -> None:
        deployment = await self._ostree.booted_deployment()
        commit = deployment.commit
        dest = layout.origin_path(self.backup_dir, commit)
        if dest.exists():
            logger.info("Skipping .origin backup as %s already exists.", dest.name)
            return
        src = layout.deployment_origin_source(
            self._settings.ostree_deploy_root, deployment.osname, commit,
        )
        await self._ops.run("cp", str(src), str(dest))
        logger.info("Backup of .origin created successfully.")

    async def create_and_push_seed_image(self) -> None:
        try:
            logger.debug("rpm-ostree version: %s", await self._ostree.query_version())
        except HostCommandError as exc:
            logger.warning("Could not query rpm-ostree version: %s", exc)
        await self._assembler.assemble(
            self.backup_dir, self._image_ref, self._settings.auth_file,
        )
