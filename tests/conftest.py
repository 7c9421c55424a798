"""
Pytest configuration and fixtures for ccpolicy tests.

This module provides in-memory collaborators and sample manifests used
across the unit tests. Nothing here talks to a registry or a cluster.
"""

from __future__ import annotations

from typing import Any

import pytest

from ccpolicy.cluster import ConfigMapSource
from ccpolicy.errors import ConfigMapLookupError, ImageInspectError
from ccpolicy.image import ImageConfig, ImageConfigSource
from ccpolicy.rules import get_pause_image_ref


class FakeImageSource(ImageConfigSource):
    """Image source serving configurations from a dictionary."""

    def __init__(self, configs: dict[str, ImageConfig]):
        self.configs = configs
        self.fetched: list[str] = []

    def fetch(self, image_reference: str) -> ImageConfig:
        self.fetched.append(image_reference)
        if image_reference not in self.configs:
            raise ImageInspectError(
                f"failed to get image config with the uri {image_reference}"
            )
        return self.configs[image_reference]


class FakeConfigMapSource(ConfigMapSource):
    """Config map source serving values from a dictionary."""

    def __init__(self, maps: dict[str, dict[str, str]]):
        self.maps = maps
        self.lookups: list[tuple[str, str, str | None]] = []

    def get_value(self, name: str, key: str, namespace: str | None = None) -> str:
        self.lookups.append((name, key, namespace))
        data = self.maps.get(name, {})
        if key not in data:
            raise ConfigMapLookupError(
                f"failed to find value using key {key} from configMap {name}"
            )
        return data[key]


# Image fixtures


@pytest.fixture
def busybox_config() -> ImageConfig:
    """Return a busybox-like image configuration."""
    return ImageConfig(
        cmd=("sh",),
        env=("PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",),
    )


@pytest.fixture
def nginx_config() -> ImageConfig:
    """Return an nginx-like image configuration."""
    return ImageConfig(
        entrypoint=("/docker-entrypoint.sh",),
        cmd=("nginx", "-g", "daemon off;"),
        working_dir="/usr/share/nginx",
        env=(
            "PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
            "NGINX_VERSION=1.25.3",
        ),
        volumes=("/var/cache/nginx",),
    )


@pytest.fixture
def pause_config() -> ImageConfig:
    """Return a pause-like image configuration."""
    return ImageConfig(entrypoint=("/pause",))


@pytest.fixture
def image_source(busybox_config, nginx_config, pause_config) -> FakeImageSource:
    """Return an image source knowing busybox, nginx and the pause image."""
    return FakeImageSource({
        "busybox": busybox_config,
        "busybox:1.36": busybox_config,
        "nginx:1.25": nginx_config,
        get_pause_image_ref(): pause_config,
    })


@pytest.fixture
def config_maps() -> FakeConfigMapSource:
    """Return a config map source with one map."""
    return FakeConfigMapSource({"app-config": {"log_level": "debug"}})


# Manifest fixtures


@pytest.fixture
def pod_manifest() -> dict[str, Any]:
    """Return a Pod running a shell command."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "sleeper", "namespace": "apps"},
        "spec": {
            "containers": [
                {
                    "name": "app",
                    "image": "busybox",
                    "command": ["/bin/sh", "-c", "sleep 1"],
                    "env": [{"name": "MODE", "value": "test"}],
                },
            ],
        },
    }


@pytest.fixture
def deployment_manifest() -> dict[str, Any]:
    """Return a Deployment with an init container and volumes."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web"},
        "spec": {
            "replicas": 2,
            "template": {
                "metadata": {"labels": {"app": "web"}},
                "spec": {
                    "initContainers": [
                        {
                            "name": "init",
                            "image": "busybox:1.36",
                            "args": ["echo", "ready"],
                        },
                    ],
                    "containers": [
                        {
                            "name": "nginx",
                            "image": "nginx:1.25",
                            "volumeMounts": [
                                {"name": "cache", "mountPath": "/cache"},
                                {"name": "certs", "mountPath": "/etc/certs"},
                            ],
                        },
                    ],
                    "volumes": [
                        {"name": "cache", "emptyDir": {}},
                        {"name": "certs", "secret": {"secretName": "web-certs"}},
                    ],
                },
            },
        },
    }
