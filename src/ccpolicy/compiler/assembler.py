"""
Policy document assembly for ccpolicy.

Turns workload manifests (or a bare image reference) into policy
documents, and whole multi-document YAML streams into annotated
manifests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from ccpolicy.cluster import ConfigMapSource, KubernetesConfigMapSource
from ccpolicy.compiler.builder import ContainerPolicyBuilder
from ccpolicy.config import GeneratorConfig
from ccpolicy.errors import ManifestError, PolicyError, UnsupportedKindError
from ccpolicy.image import ImageConfigSource, SkopeoInspector
from ccpolicy.manifest import ContainerView, WorkloadManifest, inject_policy
from ccpolicy.models import ContainerPolicy, PolicyDocument
from ccpolicy.observability import get_logger

SANDBOX_CONTAINER_NAME = "pause"


def image_ref_key(image_ref: str) -> str:
    """Policy key for a bare image reference: the text before the first ':'."""
    return image_ref.split(":", 1)[0]


@dataclass
class StreamResult:
    """
    Result of compiling a multi-document manifest stream.

    Attributes:
        documents: Policy documents in stream order
        manifests: All manifests in stream order, annotated where compiled
    """

    documents: list[PolicyDocument] = field(default_factory=list)
    manifests: list[Any] = field(default_factory=list)

    @property
    def policy_text(self) -> str:
        """Pretty JSON of every policy document, newline separated."""
        return "\n".join(document.to_json() for document in self.documents)

    @property
    def policy_base64(self) -> str:
        """Base64 of every policy document, newline separated."""
        return "\n".join(document.to_base64() for document in self.documents)

    def to_yaml(self) -> str:
        """Serialize the (annotated) manifests back to a YAML stream."""
        return yaml.safe_dump_all(
            self.manifests,
            sort_keys=False,
            default_flow_style=False,
        )


class PolicyAssembler:
    """
    Compiles policy documents for workloads.

    Containers are compiled in manifest order, then init containers, then
    the sandbox container when default rules are requested. A failure in
    any container aborts the whole document.

    Example:
        assembler = PolicyAssembler(SkopeoInspector(), with_default_rules=True)
        result = assembler.compile_stream(open("pod.yaml").read())
        print(result.policy_base64)
    """

    def __init__(
        self,
        image_source: ImageConfigSource,
        config_maps: ConfigMapSource | None = None,
        with_default_rules: bool = False,
        pause_image_ref: str | None = None,
    ):
        """
        Initialize the assembler.

        Args:
            image_source: Registry collaborator
            config_maps: Cluster collaborator for configMapKeyRef values
            with_default_rules: Include runtime defaults and the sandbox policy
            pause_image_ref: Override for the sandbox image
        """
        self.config_maps = config_maps
        self.with_default_rules = with_default_rules
        self.builder = ContainerPolicyBuilder(image_source, pause_image_ref=pause_image_ref)
        self._log = get_logger("compiler.assembler")

    @classmethod
    def from_config(
        cls,
        config: GeneratorConfig,
        image_source: ImageConfigSource | None = None,
        config_maps: ConfigMapSource | None = None,
    ) -> PolicyAssembler:
        """Create an assembler with collaborators built from configuration."""
        if image_source is None:
            image_source = SkopeoInspector(
                skopeo_path=config.registry.skopeo_path,
                default_transport=config.registry.default_transport,
                default_registry=config.registry.default_registry,
                timeout_seconds=config.registry.timeout_seconds,
                extra_args=config.registry.extra_args,
            )
        if config_maps is None:
            config_maps = KubernetesConfigMapSource(
                kubeconfig=config.cluster.kubeconfig,
                context=config.cluster.context,
                in_cluster=config.cluster.in_cluster,
                namespace=config.cluster.namespace,
            )
        return cls(
            image_source,
            config_maps=config_maps,
            with_default_rules=config.with_default_rules,
            pause_image_ref=config.sandbox.image_ref,
        )

    def _compile_container(
        self,
        container: ContainerView,
        manifest: WorkloadManifest,
    ) -> tuple[str, ContainerPolicy]:
        name = container.name()
        policy = self.builder.from_container(
            container,
            manifest.volumes,
            with_default_rules=self.with_default_rules,
        )
        self._log.container_compiled(
            name,
            arg_count=len(policy.oci_spec.process.args),
            env_count=len(policy.oci_spec.process.env),
            mount_count=len(policy.oci_spec.mounts),
        )
        return name, policy

    def from_workload(self, manifest: WorkloadManifest) -> PolicyDocument:
        """
        Compile the policy document of one workload.

        Raises:
            PolicyError: If any container fails to compile
        """
        kind = manifest.kind.value
        workload = manifest.name or "<unnamed>"
        self._log.document_started(kind, workload)

        document = PolicyDocument()
        try:
            for container in manifest.containers + manifest.init_containers:
                name, policy = self._compile_container(container, manifest)
                document.add(name, policy)

            if self.with_default_rules:
                document.add(SANDBOX_CONTAINER_NAME, self.builder.sandbox())
        except PolicyError as e:
            self._log.document_failed(kind, workload, str(e))
            raise

        self._log.document_compiled(kind, workload, len(document))
        return document

    def from_manifest(self, document: dict[str, Any]) -> tuple[WorkloadManifest, PolicyDocument]:
        """Extract and compile a single manifest document."""
        manifest = WorkloadManifest.extract(document, config_maps=self.config_maps)
        return manifest, self.from_workload(manifest)

    def from_image_ref(self, image_ref: str) -> PolicyDocument:
        """Compile a single-container policy document for a bare image."""
        document = PolicyDocument()
        document.add(
            image_ref_key(image_ref),
            self.builder.from_image_ref(image_ref, with_default_rules=self.with_default_rules),
        )
        self._log.document_compiled("image", image_ref, len(document))
        return document

    def compile_stream(self, text: str) -> StreamResult:
        """
        Compile every workload in a multi-document YAML stream.

        Empty documents and documents of unsupported kinds are kept
        unchanged and produce no policy. Compiled documents get the policy
        annotation injected.

        Raises:
            ManifestError: If the stream is not valid YAML
            PolicyError: If a supported workload fails to compile
        """
        try:
            documents = list(yaml.safe_load_all(text))
        except yaml.YAMLError as e:
            raise ManifestError(f"failed to parse manifest: {e}") from e

        result = StreamResult()
        for index, document in enumerate(documents):
            if document is None:
                result.manifests.append(document)
                continue
            try:
                manifest, policy = self.from_manifest(document)
            except UnsupportedKindError as e:
                self._log.document_skipped(index, str(e))
                result.manifests.append(document)
                continue

            inject_policy(manifest.document, manifest.kind, policy.to_base64())
            result.documents.append(policy)
            result.manifests.append(manifest.document)

        return result
