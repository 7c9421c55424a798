"""
Config map lookup against a Kubernetes cluster.

Environment variables declared with valueFrom.configMapKeyRef are resolved
to their literal value at compile time so the policy can pin them exactly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ccpolicy.errors import ConfigMapLookupError

logger = logging.getLogger(__name__)


class ConfigMapSource(ABC):
    """Anything that can return a config map value."""

    @abstractmethod
    def get_value(self, name: str, key: str, namespace: str | None = None) -> str:
        """
        Return the value stored under key in config map name.

        Raises:
            ConfigMapLookupError: If the map or the key does not exist
        """
        pass


class KubernetesConfigMapSource(ConfigMapSource):
    """
    Config map source backed by the Kubernetes API.

    Each config map is read at most once per source instance.
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        in_cluster: bool = False,
        namespace: str = "default",
    ) -> None:
        """
        Initialize the config map source.

        Args:
            kubeconfig: Path to kubeconfig file (default: ~/.kube/config)
            context: Kubernetes context to use (default: current context)
            in_cluster: If True, use in-cluster configuration
            namespace: Namespace used when the workload does not set one
        """
        self._kubeconfig = kubeconfig
        self._context = context
        self._in_cluster = in_cluster
        self._namespace = namespace
        self._core_v1: Any = None
        self._cache: dict[tuple[str, str], dict[str, Any]] = {}

    def _init_client(self) -> None:
        """Initialize the Kubernetes client."""
        if self._core_v1 is not None:
            return

        try:
            if self._in_cluster:
                config.load_incluster_config()
            else:
                config.load_kube_config(
                    config_file=self._kubeconfig,
                    context=self._context,
                )
        except Exception as e:
            raise ConfigMapLookupError(
                "failed to load Kubernetes configuration", diagnostic=str(e)
            ) from e

        self._core_v1 = client.CoreV1Api(client.ApiClient())

    def _read_data(self, name: str, namespace: str) -> dict[str, Any]:
        """Read the data section of a config map."""
        cache_key = (namespace, name)
        if cache_key in self._cache:
            return self._cache[cache_key]

        self._init_client()
        logger.debug(f"Reading configMap {namespace}/{name}")

        try:
            config_map = self._core_v1.read_namespaced_config_map(name, namespace)
        except ApiException as e:
            raise ConfigMapLookupError(
                f"failed to read configMap {namespace}/{name}",
                diagnostic=str(e.reason),
            ) from e

        data = dict(config_map.data or {})
        self._cache[cache_key] = data
        return data

    def get_value(self, name: str, key: str, namespace: str | None = None) -> str:
        """Return the value stored under key in config map name."""
        data = self._read_data(name, namespace or self._namespace)

        if key not in data:
            raise ConfigMapLookupError(
                f"failed to find value using key {key} from configMap {name}"
            )

        value = data[key]
        if not isinstance(value, str):
            raise ConfigMapLookupError(
                f"value of key {key} in configMap {name} is not a string"
            )
        return value
