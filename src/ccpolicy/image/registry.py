"""
Registry inspection for container images.

Fetches an image's configuration with skopeo, without pulling layers.
skopeo is an open source tool for working with remote image registries.

https://github.com/containers/skopeo
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod

from ccpolicy.errors import ImageInspectError
from ccpolicy.image.config import ImageConfig

logger = logging.getLogger(__name__)

DEFAULT_TRANSPORT = "docker://"
DEFAULT_REGISTRY = "docker.io/library/"
SCHEME_SEPARATOR = "://"


def normalize_image_reference(
    image_reference: str,
    default_transport: str = DEFAULT_TRANSPORT,
    default_registry: str = DEFAULT_REGISTRY,
) -> str:
    """
    Expand an image reference into a transport URI.

    - "nginx:1.25" -> "docker://docker.io/library/nginx:1.25"
    - "quay.io/org/app" -> "docker://quay.io/org/app"
    - "oci-archive://..." is returned unchanged

    Args:
        image_reference: Bare name, registry/name, or full URI
        default_transport: Scheme prefixed to references without one
        default_registry: Namespace prefixed to bare names

    Returns:
        Image URI understood by skopeo
    """
    if SCHEME_SEPARATOR in image_reference:
        return image_reference
    if "/" in image_reference:
        return f"{default_transport}{image_reference}"
    return f"{default_transport}{default_registry}{image_reference}"


class ImageConfigSource(ABC):
    """Anything that can return the configuration of an image."""

    @abstractmethod
    def fetch(self, image_reference: str) -> ImageConfig:
        """
        Return the configuration of an image.

        Raises:
            ImageInspectError: If the configuration cannot be retrieved
        """
        pass


class SkopeoInspector(ImageConfigSource):
    """
    Image configuration source backed by `skopeo inspect --config`.

    Usage:
        inspector = SkopeoInspector()
        if inspector.is_available():
            config = inspector.fetch("nginx:latest")
            print(config.entrypoint)
    """

    def __init__(
        self,
        skopeo_path: str = "skopeo",
        default_transport: str = DEFAULT_TRANSPORT,
        default_registry: str = DEFAULT_REGISTRY,
        timeout_seconds: int = 120,
        extra_args: list[str] | None = None,
    ):
        """
        Initialize SkopeoInspector.

        Args:
            skopeo_path: skopeo binary name or path
            default_transport: Scheme for references without one
            default_registry: Namespace for bare image names
            timeout_seconds: Maximum time to wait for one inspection
            extra_args: Additional arguments, e.g. ["--tls-verify=false"]
        """
        self._skopeo_path = skopeo_path
        self._default_transport = default_transport
        self._default_registry = default_registry
        self._timeout_seconds = timeout_seconds
        self._extra_args = list(extra_args or [])

    def _get_skopeo_path(self) -> str | None:
        """Resolve the skopeo binary."""
        return shutil.which(self._skopeo_path)

    def is_available(self) -> bool:
        """Check if skopeo is available on the system."""
        return self._get_skopeo_path() is not None

    def image_uri(self, image_reference: str) -> str:
        """Return the URI that will be passed to skopeo."""
        return normalize_image_reference(
            image_reference,
            default_transport=self._default_transport,
            default_registry=self._default_registry,
        )

    def fetch(self, image_reference: str) -> ImageConfig:
        """Inspect an image and parse its configuration."""
        image_uri = self.image_uri(image_reference)
        cmd = [self._skopeo_path, "inspect", *self._extra_args, image_uri, "--config"]

        logger.debug(f"Running skopeo: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            raise ImageInspectError(
                f"skopeo inspect of {image_uri} timed out after {self._timeout_seconds}s"
            )
        except FileNotFoundError:
            raise ImageInspectError(
                "skopeo binary not found", diagnostic=self._skopeo_path
            )
        except OSError as e:
            raise ImageInspectError("failed to run skopeo", diagnostic=str(e))

        if result.returncode != 0 or not result.stdout.strip():
            raise ImageInspectError(
                f"failed to get image config with the uri {image_uri}",
                diagnostic=result.stderr.strip(),
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ImageInspectError(
                f"failed to parse image config of {image_uri}", diagnostic=str(e)
            )

        if not isinstance(data, dict):
            raise ImageInspectError(f"unexpected image config of {image_uri}")

        return ImageConfig.from_dict(data)
