"""
Policy document model for ccpolicy.

A PolicyDocument maps container names to ContainerPolicy entries and is
serialized as pretty-printed JSON, optionally base64 encoded for transport
in a pod annotation.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Iterator

from ccpolicy.models.oci import AllowSpec

# Version of the policy document format
POLICY_VERSION = "0.1.0"


@dataclass
class Custom:
    """Auxiliary constraints outside the OCI spec."""

    # Reserved for content-addressed layer constraints; always empty for now
    layers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting empty fields."""
        data: dict[str, Any] = {}
        if self.layers:
            data["layers"] = list(self.layers)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Custom:
        """Create from dictionary."""
        return cls(layers=list(data.get("layers", [])))


@dataclass
class ContainerPolicy:
    """Finished allow-list for one container."""

    oci_spec: AllowSpec
    custom: Custom = field(default_factory=Custom)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "oci_spec": self.oci_spec.to_dict(),
            "custom": self.custom.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContainerPolicy:
        """Create from dictionary."""
        return cls(
            oci_spec=AllowSpec.from_dict(data["oci_spec"]),
            custom=Custom.from_dict(data.get("custom") or {}),
        )


@dataclass
class PolicyDocument:
    """
    Versioned collection of container policies for one workload.

    Containers are kept in insertion order so serialization is
    deterministic; adding a policy under an existing name replaces it.
    """

    version: str = POLICY_VERSION
    containers: dict[str, ContainerPolicy] = field(default_factory=dict)

    def add(self, name: str, policy: ContainerPolicy) -> None:
        """Add or replace the policy for a container."""
        self.containers[name] = policy

    def __len__(self) -> int:
        return len(self.containers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.containers)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "containers": {
                name: policy.to_dict() for name, policy in self.containers.items()
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to pretty-printed JSON."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_base64(self) -> str:
        """Encode the JSON form as base64."""
        return base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")

    def __str__(self) -> str:
        return self.to_json()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyDocument:
        """Create from dictionary."""
        return cls(
            version=data.get("version", POLICY_VERSION),
            containers={
                name: ContainerPolicy.from_dict(policy)
                for name, policy in data.get("containers", {}).items()
            },
        )

    @classmethod
    def from_json(cls, json_str: str) -> PolicyDocument:
        """Create from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_base64(cls, encoded: str) -> PolicyDocument:
        """Decode a base64 policy produced by to_base64."""
        return cls.from_json(base64.b64decode(encoded).decode("utf-8"))
