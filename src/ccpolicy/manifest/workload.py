"""
Kubernetes workload manifest extraction.

Normalizes a parsed workload manifest (Pod, Job, Deployment or
ReplicationController) into the pieces policy compilation needs: the
containers and init containers, the declared volumes, and per-container
accessors for security context, environment, entry point and mounts.

Every accessor reports problems as a ManifestError naming the exact field
at fault, e.g. "spec.containers[0].securityContext.privileged".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

from ccpolicy.cluster import ConfigMapSource
from ccpolicy.errors import (
    ConfigMapLookupError,
    ManifestError,
    MountPropagationError,
    UnsupportedKindError,
    UnsupportedReferenceError,
    VolumeNotFoundError,
)
from ccpolicy.models import Mount

logger = logging.getLogger(__name__)

# valueFrom reference kinds
CONFIG_MAP_KEY_REF = "configMapKeyRef"
SECRET_KEY_REF = "secretKeyRef"
FIELD_REF = "fieldRef"
RESOURCE_FIELD_REF = "resourceFieldRef"

# References whose value is only known at launch time
RUNTIME_VALUE_REFS = (SECRET_KEY_REF, FIELD_REF, RESOURCE_FIELD_REF)

# mountPropagation mode -> mount option
MOUNT_PROPAGATION_OPTIONS = {
    "None": "rprivate",
    "HostToContainer": "rslave",
    "Bidirectional": "rshared",
}


class WorkloadKind(Enum):
    """Supported workload kinds and where each keeps its pod template."""

    POD = "Pod"
    JOB = "Job"
    DEPLOYMENT = "Deployment"
    REPLICATION_CONTROLLER = "ReplicationController"

    @property
    def template_path(self) -> tuple[str, ...]:
        """Path of the pod (template) object holding metadata and spec."""
        if self is WorkloadKind.POD:
            return ()
        return ("spec", "template")

    @property
    def pod_spec_path(self) -> tuple[str, ...]:
        """Path of the pod spec holding containers and volumes."""
        return self.template_path + ("spec",)

    @classmethod
    def from_manifest(cls, document: Mapping[str, Any]) -> WorkloadKind:
        """
        Classify a manifest by its kind field.

        Raises:
            ManifestError: If kind is not a string
            UnsupportedKindError: If kind is not supported
        """
        kind = document.get("kind", "")
        if not isinstance(kind, str):
            raise ManifestError("failed to parse kind into str", field_path="kind")
        try:
            return cls(kind)
        except ValueError:
            raise UnsupportedKindError(kind)


class VolumeType(Enum):
    """Pod volume sources we distinguish."""

    UNKNOWN = "unknown"
    EMPTY_DIR = "emptyDir"
    SECRET = "secret"
    CONFIG_MAP = "configMap"
    DOWNWARD_API = "downwardAPI"
    PROJECTED = "projected"
    HOST_PATH = "hostPath"


# Kubelet always mounts these read-only, kubernetes/kubernetes#60814
READONLY_VOLUME_TYPES = frozenset({
    VolumeType.SECRET,
    VolumeType.CONFIG_MAP,
    VolumeType.DOWNWARD_API,
    VolumeType.PROJECTED,
})


@dataclass(frozen=True)
class Volume:
    """A resolved pod volume declaration."""

    type: VolumeType = VolumeType.UNKNOWN
    readonly: bool = False
    host_path: str = ""
    is_local: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Volume:
        """Resolve a volume declaration; the first known source key wins."""
        if VolumeType.EMPTY_DIR.value in data:
            empty_dir = data[VolumeType.EMPTY_DIR.value]
            # Only "emptyDir: {}" is backed by guest-local storage
            is_local = isinstance(empty_dir, dict) and not empty_dir
            return cls(type=VolumeType.EMPTY_DIR, is_local=is_local)

        for volume_type in (
            VolumeType.SECRET,
            VolumeType.CONFIG_MAP,
            VolumeType.DOWNWARD_API,
            VolumeType.PROJECTED,
        ):
            if volume_type.value in data:
                return cls(type=volume_type, readonly=True)

        if VolumeType.HOST_PATH.value in data:
            host_path = data[VolumeType.HOST_PATH.value]
            path = host_path.get("path") if isinstance(host_path, dict) else None
            return cls(
                type=VolumeType.HOST_PATH,
                host_path=path if isinstance(path, str) else "",
            )

        return cls()


@dataclass(frozen=True)
class SecurityContext:
    """Container security settings relevant to the policy."""

    privileged: bool = False
    allow_privilege_escalation: bool = False


@dataclass(frozen=True)
class Debugging:
    """Container debugging settings."""

    tty: bool = False


class EntryPoint(NamedTuple):
    """Container entry point override."""

    working_dir: str
    command: list[str]
    args: list[str]


def _format_path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _get_mapping(data: Mapping[str, Any], key: str, path: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ManifestError(f"failed to parse {key} into mapping", field_path=path)
    return value


def _get_sequence(data: Mapping[str, Any], key: str, path: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"failed to parse {key} into sequence", field_path=path)
    return value


def _get_str(data: Mapping[str, Any], key: str, path: str, required: bool = True) -> str:
    value = data.get(key)
    if value is None and not required:
        return ""
    if not isinstance(value, str):
        raise ManifestError(f"failed to parse {key} into string", field_path=path)
    return value


def _get_bool(data: Mapping[str, Any], key: str, path: str, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ManifestError(f"failed to parse {key} into bool", field_path=path)
    return value


def _get_str_list(data: Mapping[str, Any], key: str, path: str) -> list[str]:
    items = _get_sequence(data, key, path)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise ManifestError(
                f"failed to parse {key} item into string", field_path=f"{path}[{i}]"
            )
    return list(items)


class ContainerView:
    """
    Accessors over one container entry of a workload manifest.

    Each accessor parses its own fields on demand, so a malformed field
    only fails the operation that needs it.
    """

    def __init__(
        self,
        data: Mapping[str, Any],
        field_path: str,
        namespace: str | None = None,
        config_maps: ConfigMapSource | None = None,
    ):
        """
        Initialize a container view.

        Args:
            data: Raw container mapping
            field_path: Path of the container in the manifest
            namespace: Namespace used for config map lookups
            config_maps: Source for configMapKeyRef values
        """
        if not isinstance(data, dict):
            raise ManifestError("failed to parse container into mapping", field_path=field_path)
        self.data = data
        self.field_path = field_path
        self.namespace = namespace
        self._config_maps = config_maps

    def _path(self, key: str) -> str:
        return _format_path(self.field_path, key)

    def name(self) -> str:
        """Return the container name."""
        return _get_str(self.data, "name", self._path("name"))

    def image(self) -> str:
        """Return the container image reference."""
        return _get_str(self.data, "image", self._path("image"))

    def security_context(self) -> SecurityContext:
        """Return privileged and allowPrivilegeEscalation settings."""
        path = self._path("securityContext")
        context = _get_mapping(self.data, "securityContext", path)
        if context is None:
            return SecurityContext()

        return SecurityContext(
            privileged=_get_bool(context, "privileged", f"{path}.privileged"),
            allow_privilege_escalation=_get_bool(
                context,
                "allowPrivilegeEscalation",
                f"{path}.allowPrivilegeEscalation",
            ),
        )

    def debugging(self) -> Debugging:
        """Return tty setting."""
        return Debugging(tty=_get_bool(self.data, "tty", self._path("tty")))

    def environment(self) -> list[str]:
        """
        Return env rules in declaration order.

        Literal values become NAME=value. configMapKeyRef values are
        resolved and pinned exactly; secret, field and resource references
        accept any non-empty value.
        """
        path = self._path("env")
        rules = []

        for i, entry in enumerate(_get_sequence(self.data, "env", path)):
            entry_path = f"{path}[{i}]"
            if not isinstance(entry, dict):
                raise ManifestError("failed to parse env into mapping", field_path=entry_path)

            name = _get_str(entry, "name", f"{entry_path}.name")

            if "value" in entry:
                value = _get_str(entry, "value", f"{entry_path}.value")
                rules.append(f"{name}={value}")
            else:
                rules.append(self._value_from_rule(entry, name, entry_path))

        return rules

    def _value_from_rule(self, entry: Mapping[str, Any], name: str, entry_path: str) -> str:
        path = f"{entry_path}.valueFrom"
        value_from = _get_mapping(entry, "valueFrom", path)
        if value_from is None:
            return f"{name}="

        if CONFIG_MAP_KEY_REF in value_from:
            value = self._config_map_value(value_from[CONFIG_MAP_KEY_REF], f"{path}.{CONFIG_MAP_KEY_REF}")
            return f"^{name}={value}$"

        if any(ref in value_from for ref in RUNTIME_VALUE_REFS):
            return f"^{name}=."

        raise UnsupportedReferenceError(
            f"unsupported reference: {sorted(value_from)}", field_path=path
        )

    def _config_map_value(self, ref: Any, path: str) -> str:
        if not isinstance(ref, dict):
            raise ManifestError(f"failed in convert {CONFIG_MAP_KEY_REF} into map", field_path=path)

        map_name = _get_str(ref, "name", f"{path}.name")
        key = _get_str(ref, "key", f"{path}.key")

        if self._config_maps is None:
            raise ConfigMapLookupError(
                f"cannot resolve key {key} of configMap {map_name}: no config map source"
            )

        return self._config_maps.get_value(map_name, key, namespace=self.namespace)

    def entry_point(self) -> EntryPoint:
        """Return (workingDir, command, args), each empty when absent."""
        return EntryPoint(
            working_dir=_get_str(
                self.data, "workingDir", self._path("workingDir"), required=False
            ),
            command=_get_str_list(self.data, "command", self._path("command")),
            args=_get_str_list(self.data, "args", self._path("args")),
        )

    def mounts(self, volumes: Mapping[str, Volume]) -> list[Mount]:
        """
        Resolve volumeMounts against the pod's volumes.

        A read-only volume stays read-only whatever the mount declares.

        Raises:
            VolumeNotFoundError: If a mount names an undeclared volume
            MountPropagationError: If mountPropagation is unknown
        """
        path = self._path("volumeMounts")
        results = []

        for i, volume_mount in enumerate(_get_sequence(self.data, "volumeMounts", path)):
            mount_path = f"{path}[{i}]"
            if not isinstance(volume_mount, dict):
                raise ManifestError(
                    "failed to parse volumeMount into mapping", field_path=mount_path
                )

            destination = _get_str(volume_mount, "mountPath", f"{mount_path}.mountPath")
            propagation = volume_mount.get("mountPropagation", "None")
            if not isinstance(propagation, str):
                raise ManifestError(
                    "failed to parse mountPropagation into string",
                    field_path=f"{mount_path}.mountPropagation",
                )

            name = _get_str(volume_mount, "name", f"{mount_path}.name")
            volume = volumes.get(name)
            if volume is None:
                raise VolumeNotFoundError(
                    f"failed to find volume {name}", field_path=f"{mount_path}.name"
                )

            read_only = volume.readonly or _get_bool(
                volume_mount, "readOnly", f"{mount_path}.readOnly"
            )

            if propagation not in MOUNT_PROPAGATION_OPTIONS:
                raise MountPropagationError(
                    f"unknown mountPropagation type: {propagation}",
                    field_path=f"{mount_path}.mountPropagation",
                )

            results.append(Mount(
                destination=destination,
                source=volume.host_path,
                type="local" if volume.is_local else "bind",
                options=[
                    "rbind",
                    MOUNT_PROPAGATION_OPTIONS[propagation],
                    "ro" if read_only else "rw",
                ],
            ))

        return results


@dataclass
class WorkloadManifest:
    """
    Normalized view of one workload manifest.

    Attributes:
        kind: Workload kind
        name: metadata.name, empty when absent
        namespace: metadata.namespace, None when absent
        containers: Views of spec containers
        init_containers: Views of spec initContainers
        volumes: Resolved volumes keyed by name (read-only)
        document: The raw manifest
    """

    kind: WorkloadKind
    name: str = ""
    namespace: str | None = None
    containers: list[ContainerView] = field(default_factory=list)
    init_containers: list[ContainerView] = field(default_factory=list)
    volumes: Mapping[str, Volume] = field(default_factory=lambda: MappingProxyType({}))
    document: dict[str, Any] = field(default_factory=dict)

    def container_mounts(self, container: ContainerView) -> list[Mount]:
        """Resolve a container's volumeMounts against this manifest's volumes."""
        return container.mounts(self.volumes)

    @classmethod
    def extract(
        cls,
        document: dict[str, Any],
        config_maps: ConfigMapSource | None = None,
    ) -> WorkloadManifest:
        """
        Parse a workload manifest.

        Args:
            document: Parsed manifest mapping
            config_maps: Source for configMapKeyRef values

        Returns:
            WorkloadManifest

        Raises:
            UnsupportedKindError: If the kind is not supported or the
                document is not a mapping
            ManifestError: If the manifest is malformed
        """
        if not isinstance(document, dict):
            raise UnsupportedKindError("")

        kind = WorkloadKind.from_manifest(document)

        metadata = _get_mapping(document, "metadata", "metadata") or {}
        name = _get_str(metadata, "name", "metadata.name", required=False)
        namespace = _get_str(metadata, "namespace", "metadata.namespace", required=False) or None

        spec: Any = document
        spec_path = ""
        for key in kind.pod_spec_path:
            spec_path = _format_path(spec_path, key)
            spec = spec.get(key) if isinstance(spec, dict) else None
            if not isinstance(spec, dict):
                raise ManifestError("failed to find pod spec", field_path=spec_path)

        volumes = cls._resolve_volumes(spec, spec_path)

        def views(key: str) -> list[ContainerView]:
            path = _format_path(spec_path, key)
            return [
                ContainerView(entry, f"{path}[{i}]", namespace=namespace, config_maps=config_maps)
                for i, entry in enumerate(_get_sequence(spec, key, path))
            ]

        manifest = cls(
            kind=kind,
            name=name,
            namespace=namespace,
            containers=views("containers"),
            init_containers=views("initContainers"),
            volumes=volumes,
            document=document,
        )
        logger.debug(
            f"Extracted {kind.value} {name or '<unnamed>'}: "
            f"{len(manifest.containers)} containers, "
            f"{len(manifest.init_containers)} init containers, "
            f"{len(volumes)} volumes"
        )
        return manifest

    @staticmethod
    def _resolve_volumes(spec: Mapping[str, Any], spec_path: str) -> Mapping[str, Volume]:
        path = _format_path(spec_path, "volumes")
        volumes: dict[str, Volume] = {}

        for i, entry in enumerate(_get_sequence(spec, "volumes", path)):
            entry_path = f"{path}[{i}]"
            if not isinstance(entry, dict):
                raise ManifestError("failed to convert volume into mapping", field_path=entry_path)
            name = _get_str(entry, "name", f"{entry_path}.name")
            volumes[name] = Volume.from_dict(entry)

        return MappingProxyType(volumes)


def extract(
    document: dict[str, Any],
    config_maps: ConfigMapSource | None = None,
) -> WorkloadManifest:
    """
    Convenience function to parse a workload manifest.

    Example:
        >>> manifest = extract(yaml.safe_load(text))
        >>> [c.name() for c in manifest.containers]
        ['app']
    """
    return WorkloadManifest.extract(document, config_maps=config_maps)
