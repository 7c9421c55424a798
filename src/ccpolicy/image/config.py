"""
Container image configuration.

Wraps the OCI image configuration returned by the registry and derives
the allow-list rules an image contributes: its exact environment and a
bind mount for each declared volume.

Reference: https://github.com/opencontainers/image-spec/blob/main/config.md
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Any

from ccpolicy.errors import ImageInspectError
from ccpolicy.models import Mount
from ccpolicy.rules.cri import SHARED_CONTAINER_PATH


def _str_tuple(config: dict[str, Any], key: str) -> tuple[str, ...]:
    value = config.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ImageInspectError(f"config.{key}: failed to parse into list of str")
    return tuple(value)


@dataclass(frozen=True)
class ImageConfig:
    """
    Execution parameters declared by a container image.

    Attributes:
        entrypoint: ENTRYPOINT vector
        cmd: CMD vector
        working_dir: WORKDIR, empty when unset
        env: KEY=VALUE entries
        volumes: Declared VOLUME paths, in declaration order
    """

    entrypoint: tuple[str, ...] = ()
    cmd: tuple[str, ...] = ()
    working_dir: str = ""
    env: tuple[str, ...] = ()
    volumes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageConfig:
        """
        Create from an OCI image configuration document.

        Only the "config" section is read; a missing section or missing
        fields mean the image declares nothing for them.

        Raises:
            ImageInspectError: If a field has the wrong shape
        """
        config = data.get("config") or {}
        if not isinstance(config, dict):
            raise ImageInspectError("config: failed to parse image config into mapping")

        working_dir = config.get("WorkingDir") or ""
        if not isinstance(working_dir, str):
            raise ImageInspectError("config.WorkingDir: failed to parse into str")

        volumes = config.get("Volumes") or {}
        if not isinstance(volumes, dict) or not all(isinstance(path, str) for path in volumes):
            raise ImageInspectError("config.Volumes: failed to parse into mapping")

        return cls(
            entrypoint=_str_tuple(config, "Entrypoint"),
            cmd=_str_tuple(config, "Cmd"),
            working_dir=working_dir,
            env=_str_tuple(config, "Env"),
            volumes=tuple(volumes),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert back to an OCI image configuration document."""
        return {
            "config": {
                "Entrypoint": list(self.entrypoint),
                "Cmd": list(self.cmd),
                "WorkingDir": self.working_dir,
                "Env": list(self.env),
                "Volumes": {volume: {} for volume in self.volumes},
            }
        }

    def env_rules(self) -> list[str]:
        """Anchor each declared variable so it only matches byte for byte."""
        return [f"^{env}$" for env in self.env]

    def volume_mounts(self) -> list[Mount]:
        """Return a writable bind mount for every declared volume."""
        mounts = []
        for volume in self.volumes:
            file_name = posixpath.basename(volume.rstrip("/"))
            mounts.append(Mount(
                destination=volume,
                source=f"{SHARED_CONTAINER_PATH}{file_name}$",
                type="bind",
                options=["rbind", "rprivate", "rw"],
            ))
        return mounts
