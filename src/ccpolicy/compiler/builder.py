"""
Container policy builder.

Combines the four rule sources for one container, lowest precedence
first: runtime defaults, kubelet injections, the image configuration and
the manifest's own container entry.
"""

from __future__ import annotations

import logging
from typing import Mapping

from ccpolicy.engine import merge_args, merge_cwd, merge_env, merge_mounts
from ccpolicy.image import ImageConfig, ImageConfigSource
from ccpolicy.manifest import ContainerView, EntryPoint, Volume
from ccpolicy.models import AllowSpec, ContainerPolicy, Mount, Process
from ccpolicy.rules import cri, kubernetes

logger = logging.getLogger(__name__)


def build_container_policy(
    container: ContainerView | None,
    image_config: ImageConfig,
    runtime_rules: AllowSpec,
    kube_rules: AllowSpec,
    include_runtime_defaults: bool = True,
    volumes: Mapping[str, Volume] | None = None,
) -> ContainerPolicy:
    """
    Build the policy of a single container.

    The spec starts from the runtime defaults (or from nothing) and is
    merged in three steps: process args and cwd, environment, mounts.
    Nothing is returned until all three have succeeded.

    Args:
        container: Manifest container, None when there is no manifest
        image_config: Configuration of the container's image
        runtime_rules: Runtime-default fragment
        kube_rules: Orchestrator-default fragment
        include_runtime_defaults: Start from runtime_rules instead of an empty spec
        volumes: Pod volumes used to resolve volumeMounts

    Returns:
        ContainerPolicy

    Raises:
        NoCommandError: If no command can be derived
        ManifestError: If a container field is malformed
        CollaboratorError: If a config map lookup fails
    """
    spec = runtime_rules.copy() if include_runtime_defaults else AllowSpec.empty()

    if container is not None:
        entry_point = container.entry_point()
        container_env = container.environment()
        pod_mounts = container.mounts(volumes) if volumes is not None else []
    else:
        entry_point = EntryPoint(working_dir="", command=[], args=[])
        container_env = []
        pod_mounts = []

    _merge_process(spec.process, entry_point, image_config)
    spec.process.env = _merge_environment(
        spec.process.env, kube_rules, image_config, container_env
    )
    spec.mounts = _merge_all_mounts(spec.mounts, pod_mounts, kube_rules, image_config)

    return ContainerPolicy(oci_spec=spec)


def _merge_process(process: Process, entry_point: EntryPoint, image_config: ImageConfig) -> None:
    process.args = merge_args(entry_point.command, entry_point.args, image_config)

    cwd = merge_cwd(entry_point.working_dir, image_config)
    if cwd:
        process.cwd = cwd


def _merge_environment(
    defaults: list[str],
    kube_rules: AllowSpec,
    image_config: ImageConfig,
    container_env: list[str],
) -> list[str]:
    # runtime defaults < kubelet < image < manifest
    env = list(defaults)
    merge_env(env, kube_rules.process.env)
    merge_env(env, image_config.env_rules())
    merge_env(env, container_env)
    return env


def _merge_all_mounts(
    default_mounts: list[Mount],
    pod_mounts: list[Mount],
    kube_rules: AllowSpec,
    image_config: ImageConfig,
) -> list[Mount]:
    # pod volumes > kubelet mounts > image volumes > runtime defaults
    results = merge_mounts(pod_mounts, kube_rules.mounts)
    results = merge_mounts(results, image_config.volume_mounts())
    return merge_mounts(results, default_mounts)


class ContainerPolicyBuilder:
    """
    Builds container policies, fetching image configurations as needed.

    Example:
        builder = ContainerPolicyBuilder(SkopeoInspector())
        policy = builder.from_image_ref("nginx:1.25", with_default_rules=True)
    """

    def __init__(
        self,
        image_source: ImageConfigSource,
        pause_image_ref: str | None = None,
    ):
        """
        Initialize the builder.

        Args:
            image_source: Registry collaborator for image configurations
            pause_image_ref: Image used for the sandbox container
        """
        self.image_source = image_source
        self.pause_image_ref = pause_image_ref or kubernetes.get_pause_image_ref()

    def from_container(
        self,
        container: ContainerView,
        volumes: Mapping[str, Volume],
        with_default_rules: bool = False,
    ) -> ContainerPolicy:
        """Build the policy of a manifest container."""
        security_context = container.security_context()
        debugging = container.debugging()
        image_config = self.image_source.fetch(container.image())

        runtime_rules = cri.get_rules(
            is_sandbox=False,
            privileged=security_context.privileged,
            tty=debugging.tty,
        )

        return build_container_policy(
            container,
            image_config,
            runtime_rules,
            kubernetes.get_rules(is_sandbox=False),
            include_runtime_defaults=with_default_rules,
            volumes=volumes,
        )

    def from_image_ref(self, image_ref: str, with_default_rules: bool = False) -> ContainerPolicy:
        """Build the policy of a bare image with no manifest context."""
        image_config = self.image_source.fetch(image_ref)

        return build_container_policy(
            None,
            image_config,
            cri.get_rules(is_sandbox=False),
            AllowSpec.empty(),
            include_runtime_defaults=with_default_rules,
        )

    def sandbox(self) -> ContainerPolicy:
        """Build the policy of the sandbox (pause) container."""
        logger.debug(f"Building sandbox policy from {self.pause_image_ref}")
        image_config = self.image_source.fetch(self.pause_image_ref)

        return build_container_policy(
            None,
            image_config,
            cri.get_rules(is_sandbox=True),
            kubernetes.get_rules(is_sandbox=True),
            include_runtime_defaults=True,
        )
