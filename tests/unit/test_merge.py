"""
Unit tests for the merge engine.

Tests cover:
- Environment replace, append and removal semantics
- Removal positions captured before any removal happens
- Destination-keyed mount merging
- Entry point resolution from container and image
- Privileged mount adjustment
"""

from __future__ import annotations

import pytest

from ccpolicy.engine import (
    adjust_privileged_mounts,
    merge_args,
    merge_cwd,
    merge_env,
    merge_mounts,
)
from ccpolicy.errors import NoCommandError, PolicyError
from ccpolicy.image import ImageConfig
from ccpolicy.models import Mount


class TestMergeEnv:
    """Tests for merge_env."""

    def test_replace_and_ignore_unknown_removal(self):
        """Test an override replaces in place and unknown removals are ignored."""
        defaults = ["A=1", "B=2"]
        assert merge_env(defaults, ["B=3", "C"]) == ["A=1", "B=3"]

    def test_merges_in_place(self):
        """Test the defaults list itself is mutated and returned."""
        defaults = ["A=1"]
        result = merge_env(defaults, ["B=2"])
        assert result is defaults
        assert defaults == ["A=1", "B=2"]

    def test_removal(self):
        """Test a bare name removes the matching entry."""
        assert merge_env(["A=1", "B=2", "C=3"], ["B"]) == ["A=1", "C=3"]

    def test_removal_after_substitution(self):
        """Test removals run after every substitution."""
        assert merge_env(["A=1", "B=2"], ["A", "A=9"]) == ["B=2"]

    def test_removal_positions_are_not_recomputed(self):
        """Test a second removal uses the position captured before the first."""
        # A is removed from position 0, then position 1 now holds C=3
        assert merge_env(["A=1", "B=2", "C=3"], ["A", "B"]) == ["B=2"]

    def test_stale_removal_past_end_is_skipped(self):
        """Test a captured position beyond the shrunken list is ignored."""
        assert merge_env(["A=1", "B=2"], ["A", "B"]) == ["B=2"]

    def test_new_name_twice_appends_twice(self):
        """Test appended names are not indexed within one batch."""
        assert merge_env([], ["X=1", "X=2"]) == ["X=1", "X=2"]

    def test_last_occurrence_is_replaced(self):
        """Test duplicate names in defaults index their last occurrence."""
        assert merge_env(["A=1", "A=2"], ["A=3"]) == ["A=1", "A=3"]

    def test_value_containing_equals(self):
        """Test only the first '=' separates name and value."""
        assert merge_env(["OPTS=a=b"], ["OPTS=c=d"]) == ["OPTS=c=d"]

    def test_patterns_share_names(self):
        """Test an anchored image rule replaces an anchored default of the same name."""
        defaults = ["^HOSTNAME=.+", "^PATH=/usr/bin$"]
        merge_env(defaults, ["^PATH=/bin$"])
        assert defaults == ["^HOSTNAME=.+", "^PATH=/bin$"]


class TestMergeMounts:
    """Tests for merge_mounts."""

    def test_mounts_take_precedence(self):
        """Test a mount overrides an extra with the same destination."""
        mounts = [Mount("/data", "pod", "bind", ["rw"])]
        extras = [Mount("/data", "image", "bind", ["ro"]), Mount("/logs", "image")]

        result = merge_mounts(mounts, extras)

        assert [m.destination for m in result] == ["/data", "/logs"]
        assert result[0].source == "pod"

    def test_new_mounts_appended_after_extras(self):
        """Test destinations only present in mounts come last."""
        result = merge_mounts([Mount("/b")], [Mount("/a")])
        assert [m.destination for m in result] == ["/a", "/b"]

    def test_duplicate_within_list_last_wins(self):
        """Test a later entry of the same list replaces the earlier one."""
        result = merge_mounts([Mount("/d", "first"), Mount("/d", "second")], [])
        assert len(result) == 1
        assert result[0].source == "second"

    def test_empty_inputs(self):
        """Test merging nothing yields nothing."""
        assert merge_mounts([], []) == []


class TestMergeArgs:
    """Tests for merge_args."""

    @pytest.fixture
    def image(self) -> ImageConfig:
        return ImageConfig(entrypoint=("/entry",), cmd=("serve", "--port=80"))

    def test_command_discards_image(self, image):
        """Test a container command ignores image entrypoint and cmd."""
        assert merge_args(["/bin/sh", "-c"], ["sleep 1"], image) == ["/bin/sh", "-c", "sleep 1"]

    def test_command_without_args(self, image):
        """Test a container command alone does not pick up the image cmd."""
        assert merge_args(["/bin/true"], [], image) == ["/bin/true"]

    def test_args_replace_image_cmd(self, image):
        """Test container args follow the image entrypoint."""
        assert merge_args([], ["--debug"], image) == ["/entry", "--debug"]

    def test_image_defaults(self, image):
        """Test the image entrypoint and cmd are used when nothing is set."""
        assert merge_args([], [], image) == ["/entry", "serve", "--port=80"]

    def test_empty_entrypoint_sentinel(self):
        """Test an entrypoint of a single empty string is dropped."""
        image = ImageConfig(entrypoint=("",), cmd=("nginx",))
        assert merge_args([], [], image) == ["nginx"]

    def test_no_command(self):
        """Test an empty result is an error."""
        with pytest.raises(NoCommandError) as exc_info:
            merge_args([], [], ImageConfig())
        assert str(exc_info.value) == "no command specified"
        assert isinstance(exc_info.value, PolicyError)

    def test_inputs_not_mutated(self, image):
        """Test the container lists are left untouched."""
        command: list[str] = []
        args = ["x"]
        merge_args(command, args, image)
        assert command == []
        assert args == ["x"]


class TestMergeCwd:
    """Tests for merge_cwd."""

    def test_container_wins(self):
        """Test the container workingDir takes precedence."""
        assert merge_cwd("/app", ImageConfig(working_dir="/image")) == "/app"

    def test_image_fallback(self):
        """Test the image WorkingDir is used when the container sets none."""
        assert merge_cwd("", ImageConfig(working_dir="/image")) == "/image"

    def test_neither(self):
        """Test an empty result keeps the inherited default."""
        assert merge_cwd("", ImageConfig()) == ""


class TestAdjustPrivilegedMounts:
    """Tests for adjust_privileged_mounts."""

    def test_sysfs_and_cgroup_become_writable(self):
        """Test ro flips to rw for sysfs and cgroup only."""
        mounts = [
            Mount("/sys", "sysfs", "sysfs", ["nosuid", "ro"]),
            Mount("/sys/fs/cgroup", "cgroup", "cgroup", ["ro", "relatime"]),
            Mount("/proc", "proc", "proc", ["ro"]),
        ]

        result = adjust_privileged_mounts(mounts)

        assert result is mounts
        assert mounts[0].options == ["nosuid", "rw"]
        assert mounts[1].options == ["rw", "relatime"]
        assert mounts[2].options == ["ro"]

    def test_every_mount_is_inspected(self):
        """Test a non-matching mount does not stop the scan."""
        mounts = [
            Mount("/proc", "proc", "proc", ["ro"]),
            Mount("/sys", "sysfs", "sysfs", ["ro"]),
        ]
        adjust_privileged_mounts(mounts)
        assert mounts[1].options == ["rw"]
