"""
OCI runtime-spec data model for ccpolicy.

An AllowSpec is the subset of an OCI runtime specification that the guest
checks a launch request against. String fields hold either literal values
or anchored regular expressions.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

# ociVersion emitted for specs built on top of the runtime defaults
OCI_VERSION = "1.0.2-dev"


@dataclass
class User:
    """Process user identity."""

    uid: int = 0
    gid: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"uid": self.uid, "gid": self.gid}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Create from dictionary."""
        return cls(uid=int(data.get("uid", 0)), gid=int(data.get("gid", 0)))


@dataclass
class Process:
    """
    Process section of an AllowSpec.

    Attributes:
        user: User the process runs as
        cwd: Working directory; empty means "keep the inherited default"
        args: Full argument vector (command followed by args)
        env: Environment rules, NAME=VALUE literals or anchored patterns
        terminal: Whether a tty is attached
    """

    user: User = field(default_factory=User)
    cwd: str = ""
    args: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    terminal: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary using OCI field names."""
        data: dict[str, Any] = {}
        if self.terminal:
            data["terminal"] = True
        data["user"] = self.user.to_dict()
        data["args"] = list(self.args)
        data["env"] = list(self.env)
        data["cwd"] = self.cwd
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Process:
        """Create from dictionary."""
        return cls(
            user=User.from_dict(data.get("user", {})),
            cwd=data.get("cwd", ""),
            args=list(data.get("args", [])),
            env=list(data.get("env", [])),
            terminal=bool(data.get("terminal", False)),
        )


@dataclass
class Mount:
    """
    A filesystem mount rule.

    Two mounts are the same mount point when their destinations match;
    source, type and options are never merged field by field.
    """

    destination: str
    source: str = ""
    type: str = ""
    options: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "destination": self.destination,
            "source": self.source,
            "type": self.type,
            "options": list(self.options),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Mount:
        """
        Create from dictionary.

        Raises:
            KeyError: If destination is missing
            TypeError: If options is not a list of strings
        """
        options = data.get("options", [])
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            raise TypeError(f"mount options must be a list of strings, got {options!r}")
        return cls(
            destination=data["destination"],
            source=data.get("source", ""),
            type=data.get("type", ""),
            options=list(options),
        )


@dataclass
class AllowSpec:
    """
    Per-container allow-list under construction.

    Rule sources (runtime defaults, orchestrator defaults, image and manifest)
    are all expressed as AllowSpec fragments so the merge engine has a single
    input shape.
    """

    oci_version: str = ""
    process: Process = field(default_factory=Process)
    mounts: list[Mount] = field(default_factory=list)

    @classmethod
    def empty(cls) -> AllowSpec:
        """Return a spec with no rules at all."""
        return cls()

    def copy(self) -> AllowSpec:
        """Return a deep copy that can be mutated independently."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to an OCI runtime-spec dictionary."""
        return {
            "ociVersion": self.oci_version,
            "process": self.process.to_dict(),
            "mounts": [m.to_dict() for m in self.mounts],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AllowSpec:
        """Create from an OCI runtime-spec dictionary."""
        return cls(
            oci_version=data.get("ociVersion", ""),
            process=Process.from_dict(data.get("process", {})),
            mounts=[Mount.from_dict(m) for m in data.get("mounts", [])],
        )
