"""
Generator configuration for ccpolicy.

Provides configuration for the external collaborators (registry and
cluster access), the sandbox pause image, and compilation defaults.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from ccpolicy.errors import ConfigError
from ccpolicy.image.registry import DEFAULT_REGISTRY, DEFAULT_TRANSPORT
from ccpolicy.rules.kubernetes import (
    KUBERNETES_PAUSE_NAME,
    KUBERNETES_PAUSE_VERSION,
    KUBERNETES_REGISTRY,
    get_pause_image_ref,
)


@dataclass
class RegistryConfig:
    """Configuration for image registry inspection."""

    skopeo_path: str = "skopeo"
    default_registry: str = DEFAULT_REGISTRY
    default_transport: str = DEFAULT_TRANSPORT
    timeout_seconds: int = 120
    extra_args: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "skopeo_path": self.skopeo_path,
            "default_registry": self.default_registry,
            "default_transport": self.default_transport,
            "timeout_seconds": self.timeout_seconds,
            "extra_args": self.extra_args,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryConfig:
        """Create from dictionary."""
        return cls(
            skopeo_path=data.get("skopeo_path", "skopeo"),
            default_registry=data.get("default_registry", DEFAULT_REGISTRY),
            default_transport=data.get("default_transport", DEFAULT_TRANSPORT),
            timeout_seconds=int(data.get("timeout_seconds", 120)),
            extra_args=list(data.get("extra_args", [])),
        )


@dataclass
class ClusterConfig:
    """Configuration for config map lookups."""

    kubeconfig: str | None = None
    context: str | None = None
    in_cluster: bool = False
    namespace: str = "default"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kubeconfig": self.kubeconfig,
            "context": self.context,
            "in_cluster": self.in_cluster,
            "namespace": self.namespace,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClusterConfig:
        """Create from dictionary."""
        return cls(
            kubeconfig=data.get("kubeconfig"),
            context=data.get("context"),
            in_cluster=data.get("in_cluster", False),
            namespace=data.get("namespace", "default"),
        )


@dataclass
class SandboxConfig:
    """Pause image used for the sandbox container policy."""

    registry: str = KUBERNETES_REGISTRY
    name: str = KUBERNETES_PAUSE_NAME
    version: str = KUBERNETES_PAUSE_VERSION

    @property
    def image_ref(self) -> str:
        """Full pause image reference."""
        return get_pause_image_ref(self.registry, self.name, self.version)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "registry": self.registry,
            "name": self.name,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SandboxConfig:
        """Create from dictionary."""
        return cls(
            registry=data.get("registry", KUBERNETES_REGISTRY),
            name=data.get("name", KUBERNETES_PAUSE_NAME),
            version=str(data.get("version", KUBERNETES_PAUSE_VERSION)),
        )


@dataclass
class GeneratorConfig:
    """
    Complete generator configuration.

    This is the main configuration class that contains all settings
    for compiling policies.
    """

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    with_default_rules: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "registry": self.registry.to_dict(),
            "cluster": self.cluster.to_dict(),
            "sandbox": self.sandbox.to_dict(),
            "with_default_rules": self.with_default_rules,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratorConfig:
        """Create from dictionary."""
        return cls(
            registry=RegistryConfig.from_dict(data.get("registry") or {}),
            cluster=ClusterConfig.from_dict(data.get("cluster") or {}),
            sandbox=SandboxConfig.from_dict(data.get("sandbox") or {}),
            with_default_rules=bool(data.get("with_default_rules", False)),
        )

    @classmethod
    def from_file(cls, path: str) -> GeneratorConfig:
        """
        Load configuration from a JSON or YAML file.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = os.path.expanduser(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith(".json"):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to load configuration {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"configuration {path} must be a mapping")

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"invalid configuration {path}: {e}") from e


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config_from_env() -> GeneratorConfig:
    """
    Load configuration from environment variables.

    Environment variables:
        CCPOLICY_CONFIG_FILE: Path to configuration file
        CCPOLICY_SKOPEO_PATH: skopeo binary
        CCPOLICY_REGISTRY_TIMEOUT: Seconds per image inspection
        CCPOLICY_KUBECONFIG: Path to kubeconfig
        CCPOLICY_KUBE_CONTEXT: Kubernetes context
        CCPOLICY_NAMESPACE: Default namespace for config map lookups
        CCPOLICY_PAUSE_IMAGE_VERSION: Pause image tag
        CCPOLICY_WITH_DEFAULT_RULES: Include runtime defaults (true/false)

    Returns:
        GeneratorConfig instance
    """
    config_file = os.getenv("CCPOLICY_CONFIG_FILE")
    if config_file:
        config = GeneratorConfig.from_file(config_file)
    else:
        config = GeneratorConfig()

    skopeo_path = os.getenv("CCPOLICY_SKOPEO_PATH")
    if skopeo_path:
        config.registry.skopeo_path = skopeo_path

    timeout = os.getenv("CCPOLICY_REGISTRY_TIMEOUT")
    if timeout:
        try:
            config.registry.timeout_seconds = int(timeout)
        except ValueError:
            raise ConfigError(f"CCPOLICY_REGISTRY_TIMEOUT must be an integer, got {timeout!r}")

    kubeconfig = os.getenv("CCPOLICY_KUBECONFIG")
    if kubeconfig:
        config.cluster.kubeconfig = kubeconfig

    context = os.getenv("CCPOLICY_KUBE_CONTEXT")
    if context:
        config.cluster.context = context

    namespace = os.getenv("CCPOLICY_NAMESPACE")
    if namespace:
        config.cluster.namespace = namespace

    pause_version = os.getenv("CCPOLICY_PAUSE_IMAGE_VERSION")
    if pause_version:
        config.sandbox.version = pause_version

    with_default_rules = os.getenv("CCPOLICY_WITH_DEFAULT_RULES")
    if with_default_rules:
        config.with_default_rules = _env_flag(with_default_rules)

    return config
