"""
Merge rules for combining allow-list fragments.

Each function mirrors the container runtime's own behaviour when it builds
a container spec, so the resulting policy accepts exactly what a real
launch produces:

- merge_env: replace-or-append environment values with removals
- merge_mounts: destination-keyed override of mount points
- merge_args / merge_cwd: process entry point resolution
- adjust_privileged_mounts: sysfs and cgroup become writable when privileged
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ccpolicy.errors import NoCommandError
from ccpolicy.models import Mount

if TYPE_CHECKING:
    from ccpolicy.image.config import ImageConfig

logger = logging.getLogger(__name__)

# Mount types whose "ro" option flips to "rw" for privileged containers
PRIVILEGED_WRITABLE_TYPES = ("sysfs", "cgroup")


def _env_name(rule: str) -> str:
    """Return the part of an env rule before the first '='."""
    return rule.split("=", 1)[0]


def merge_env(defaults: list[str], overrides: list[str]) -> list[str]:
    """
    Merge override env rules into defaults in place.

    The merge runs in three phases:

    1. Index every name in defaults by position (last occurrence wins).
    2. For each override containing '=', replace the indexed entry in place
       or append it. Appended names are not indexed, so a batch that
       introduces the same new name twice appends it twice.
    3. Overrides without '=' are removal requests, applied after all
       substitutions using the positions captured in phase 1.

    Args:
        defaults: Existing rules, mutated in place
        overrides: Rules to apply, in order

    Returns:
        The mutated defaults list
    """
    index: dict[str, int] = {}
    for position, rule in enumerate(defaults):
        index[_env_name(rule)] = position

    removals: list[str] = []
    for rule in overrides:
        if "=" in rule:
            name = _env_name(rule)
            if name in index:
                defaults[index[name]] = rule
            else:
                defaults.append(rule)
        else:
            removals.append(rule)

    # Positions are not recomputed after a removal
    for name in removals:
        position = index.get(name)
        if position is not None and position < len(defaults):
            del defaults[position]

    return defaults


def merge_mounts(mounts: list[Mount], extras: list[Mount]) -> list[Mount]:
    """
    Merge two mount lists keyed by destination.

    Entries in mounts take precedence over extras sharing a destination,
    and within one list a later entry replaces an earlier one. A replaced
    mount keeps the position where its destination first appeared.

    Args:
        mounts: Higher-precedence mounts
        extras: Lower-precedence mounts

    Returns:
        Merged list of mounts
    """
    results: dict[str, Mount] = {}

    for mount in extras:
        results[mount.destination] = mount

    for mount in mounts:
        results[mount.destination] = mount

    return list(results.values())


def merge_args(
    container_command: list[str],
    container_args: list[str],
    image_config: ImageConfig,
) -> list[str]:
    """
    Resolve the final process argument vector.

    A container command discards the image entrypoint and cmd entirely.
    Without one, the image entrypoint is used (unless it is the single
    empty-string sentinel) and container args replace the image cmd.

    Raises:
        NoCommandError: If the result is empty
    """
    command = list(container_command)
    args = list(container_args)

    if not container_command:
        if not container_args:
            args.extend(image_config.cmd)

        entrypoint = image_config.entrypoint
        if not (len(entrypoint) == 1 and entrypoint[0] == ""):
            command.extend(entrypoint)

    if not command and not args:
        raise NoCommandError()

    return command + args


def merge_cwd(container_working_dir: str, image_config: ImageConfig) -> str:
    """
    Resolve the working directory.

    Returns:
        The container working dir, else the image's, else "" meaning the
        inherited default must be kept
    """
    if container_working_dir:
        return container_working_dir
    if image_config.working_dir:
        return image_config.working_dir
    return ""


def adjust_privileged_mounts(mounts: list[Mount]) -> list[Mount]:
    """
    Make sysfs and cgroup mounts writable in place.

    Every mount is inspected; other mount types are left untouched.

    Returns:
        The same list, for chaining
    """
    for mount in mounts:
        if mount.type in PRIVILEGED_WRITABLE_TYPES:
            mount.options = ["rw" if option == "ro" else option for option in mount.options]
            logger.debug(f"Privileged mode: {mount.destination} is writable")

    return mounts
