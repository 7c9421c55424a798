"""
Unit tests for the ccpolicy CLI.

Tests cover:
- Argument parsing and mutually exclusive inputs
- Manifest and image-ref compilation
- Output files and verbose printing
- Exit codes on failure
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import yaml

from ccpolicy import __version__
from ccpolicy.cli import create_parser, main
from ccpolicy.compiler import PolicyAssembler
from ccpolicy.manifest import CC_POLICY_ANNOTATION

POD_YAML = """\
apiVersion: v1
kind: Pod
metadata:
  name: sleeper
spec:
  containers:
  - name: app
    image: busybox
    command: ["/bin/sh", "-c", "sleep 1"]
"""


@pytest.fixture(autouse=True)
def mock_configure_logging():
    """Keep CLI runs from replacing the ccpolicy log handler."""
    with patch("ccpolicy.cli.configure_logging") as mock_configure:
        yield mock_configure


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Ignore any ccpolicy configuration in the environment."""
    monkeypatch.delenv("CCPOLICY_CONFIG_FILE", raising=False)
    monkeypatch.delenv("CCPOLICY_WITH_DEFAULT_RULES", raising=False)


@pytest.fixture
def mock_from_config(image_source, config_maps):
    """Build assemblers on the fake collaborators."""
    def build(config):
        return PolicyAssembler(
            image_source,
            config_maps=config_maps,
            with_default_rules=config.with_default_rules,
        )

    with patch.object(PolicyAssembler, "from_config", side_effect=build) as mock_build:
        yield mock_build


@pytest.fixture
def pod_file(tmp_path):
    """Write the sample pod manifest."""
    path = tmp_path / "pod.yaml"
    path.write_text(POD_YAML)
    return path


class TestCreateParser:
    """Tests for the argument parser."""

    def test_input(self):
        """Test -i with outputs."""
        args = create_parser().parse_args(["-i", "pod.yaml", "-o", "out.yaml", "-p", "policy.json"])
        assert args.input_yaml == "pod.yaml"
        assert args.output_yaml == "out.yaml"
        assert args.output_policy == "policy.json"
        assert args.image_ref is None
        assert args.with_default_rules is None

    def test_image_ref_aliases(self):
        """Test both spellings of the image and default-rules flags."""
        args = create_parser().parse_args(["--image_ref", "nginx", "--with_default_rules"])
        assert args.image_ref == "nginx"
        assert args.with_default_rules is True

    def test_input_required(self):
        """Test one input source is required."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_inputs_exclusive(self):
        """Test -i and --image-ref cannot be combined."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["-i", "pod.yaml", "--image-ref", "nginx"])

    def test_verbose_count(self):
        """Test -v can be repeated."""
        assert create_parser().parse_args(["--image-ref", "x", "-vv"]).verbose == 2

    def test_version(self, capsys):
        """Test --version prints the package version."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main."""

    def test_manifest_outputs(self, mock_from_config, pod_file, tmp_path, capsys):
        """Test the annotated manifest and policy files are written."""
        output_yaml = tmp_path / "out.yaml"
        output_policy = tmp_path / "policy.json"

        code = main(["-i", str(pod_file), "-o", str(output_yaml), "-p", str(output_policy)])

        assert code == 0
        out = capsys.readouterr().out
        assert f"{output_policy} created." in out
        assert f"{output_yaml} created." in out
        assert "Security Policy" not in out

        policy = json.loads(output_policy.read_text())
        assert policy["containers"]["app"]["oci_spec"]["process"]["args"] == [
            "/bin/sh", "-c", "sleep 1",
        ]
        manifest = yaml.safe_load(output_yaml.read_text())
        assert CC_POLICY_ANNOTATION in manifest["metadata"]["annotations"]

    def test_verbose(self, mock_from_config, pod_file, capsys, mock_configure_logging):
        """Test -v prints the policy, its encoding and its size."""
        code = main(["-i", str(pod_file), "-v"])

        assert code == 0
        out = capsys.readouterr().out
        assert "Security Policy: {" in out
        assert "Base64 encoding: " in out
        assert "Encoding size: " in out
        mock_configure_logging.assert_called_once_with(level="INFO", format="human")

    def test_debug_logging(self, mock_from_config, pod_file, mock_configure_logging):
        """Test -vv and --log-format reach the logging setup."""
        main(["-i", str(pod_file), "-vv", "--log-format", "json"])
        mock_configure_logging.assert_called_once_with(level="DEBUG", format="json")

    def test_image_ref(self, mock_from_config, tmp_path, capsys):
        """Test a bare image policy."""
        output_policy = tmp_path / "policy.json"

        code = main(["--image-ref", "nginx:1.25", "-p", str(output_policy)])

        assert code == 0
        policy = json.loads(output_policy.read_text())
        assert list(policy["containers"]) == ["nginx"]

    def test_with_default_rules(self, mock_from_config, pod_file, tmp_path):
        """Test the flag adds the sandbox policy."""
        output_policy = tmp_path / "policy.json"

        main(["-i", str(pod_file), "--with-default-rules", "-p", str(output_policy)])

        config = mock_from_config.call_args[0][0]
        assert config.with_default_rules is True
        policy = json.loads(output_policy.read_text())
        assert list(policy["containers"]) == ["app", "pause"]

    def test_config_file(self, mock_from_config, pod_file, tmp_path):
        """Test settings are read from --config."""
        config_file = tmp_path / "ccpolicy.yaml"
        config_file.write_text("with_default_rules: true\ncluster:\n  namespace: apps\n")

        main(["-i", str(pod_file), "--config", str(config_file)])

        config = mock_from_config.call_args[0][0]
        assert config.with_default_rules is True
        assert config.cluster.namespace == "apps"

    def test_compile_failure(self, mock_from_config, tmp_path, capsys):
        """Test a policy error exits with 1."""
        path = tmp_path / "pod.yaml"
        path.write_text(POD_YAML.replace("image: busybox", "image: ghost"))

        code = main(["-i", str(path)])

        assert code == 1
        assert "Error: failed to get image config" in capsys.readouterr().err

    def test_missing_input(self, mock_from_config, tmp_path, capsys):
        """Test an unreadable input file exits with 1."""
        code = main(["-i", str(tmp_path / "missing.yaml")])

        assert code == 1
        assert "cannot read" in capsys.readouterr().err

    def test_bad_config_file(self, tmp_path, capsys):
        """Test a broken configuration file exits with 1."""
        config_file = tmp_path / "bad.json"
        config_file.write_text("{")

        code = main(["--image-ref", "nginx", "--config", str(config_file)])

        assert code == 1
        assert "Error:" in capsys.readouterr().err
