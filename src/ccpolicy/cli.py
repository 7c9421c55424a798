"""
ccpolicy CLI entry point.

This module provides the command-line interface for compiling
confidential container security policies.
"""

from __future__ import annotations

import argparse
import sys

from ccpolicy import __version__
from ccpolicy.compiler import PolicyAssembler
from ccpolicy.config import GeneratorConfig, load_config_from_env
from ccpolicy.errors import PolicyError
from ccpolicy.observability import configure_logging


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ccpolicy",
        description="Compile confidential container security policies from Kubernetes manifests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ccpolicy -i pod.yaml -o pod-with-policy.yaml
  ccpolicy -i deployment.yaml -p policy.json --with-default-rules
  ccpolicy --image-ref nginx:1.25 -v
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ccpolicy {__version__}",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-i",
        "--input",
        dest="input_yaml",
        help="Workload manifest (YAML, may hold several documents)",
    )
    source.add_argument(
        "--image-ref",
        "--image_ref",
        dest="image_ref",
        help="Compile a policy for a single image instead of a manifest",
    )

    parser.add_argument(
        "-o",
        "--output",
        dest="output_yaml",
        help="Write the manifest with the policy annotation to this file",
    )
    parser.add_argument(
        "-p",
        "--policy",
        dest="output_policy",
        help="Write the policy documents (JSON) to this file",
    )
    parser.add_argument(
        "--with-default-rules",
        "--with_default_rules",
        dest="with_default_rules",
        action="store_true",
        default=None,
        help="Include container runtime defaults and the sandbox policy",
    )
    parser.add_argument(
        "--config",
        help="Configuration file (JSON or YAML)",
    )
    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default="human",
        help="Log output format (default: human)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Print the compiled policy; repeat for debug logs",
    )

    return parser


def load_config(args: argparse.Namespace) -> GeneratorConfig:
    """Resolve configuration from the environment, a config file and flags."""
    if args.config:
        config = GeneratorConfig.from_file(args.config)
    else:
        config = load_config_from_env()

    if args.with_default_rules is not None:
        config.with_default_rules = args.with_default_rules

    return config


def write_to_file(data: str, path: str) -> None:
    """Write output and report it."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(data)
    print(f"{path} created.")


def cmd_compile(args: argparse.Namespace) -> int:
    """
    Compile policies for the requested input.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, 1 on failure)
    """
    config = load_config(args)
    assembler = PolicyAssembler.from_config(config)

    patched_yaml = ""
    if args.input_yaml:
        try:
            with open(args.input_yaml, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            print(f"Error: cannot read {args.input_yaml}: {e}", file=sys.stderr)
            return 1

        result = assembler.compile_stream(text)
        policy = result.policy_text
        policy_encoded = result.policy_base64
        patched_yaml = result.to_yaml()
    else:
        document = assembler.from_image_ref(args.image_ref)
        policy = document.to_json()
        policy_encoded = document.to_base64()

    if args.verbose:
        print(f"Security Policy: {policy}")
        print(f"Base64 encoding: {policy_encoded}")
        print(f"Encoding size: {len(policy_encoded)}")

    if args.output_policy:
        write_to_file(policy, args.output_policy)

    if args.output_yaml:
        write_to_file(patched_yaml, args.output_yaml)

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    if args.verbose > 1:
        level = "DEBUG"
    elif args.verbose:
        level = "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level, format=args.log_format)

    try:
        return cmd_compile(args)
    except PolicyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
