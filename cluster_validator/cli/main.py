#!/usr/bin/env python3
"""
Kubernetes cluster validation - delivery report

Checks namespaces, Helm releases, deployments, pods, Flux Kustomizations,
nodes, the Istio version and every ingress URL, then prints a consolidated
delivery report.

Exit codes:
    0  all systems healthy
    1  issues found
    2  configuration error
    3  cluster unreachable or run timeout
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from cluster_validator import __version__
from cluster_validator.collectors import ClusterSource, FixtureSource
from cluster_validator.config import ValidatorConfig
from cluster_validator.models import UnavailablePolicy
from cluster_validator.report import render_report
from cluster_validator.utils.errors import (
    ClusterUnreachableError,
    ConfigurationError,
    RunTimeoutError,
)
from cluster_validator.validator import ClusterValidator

EXIT_OK = 0
EXIT_ISSUES = 1
EXIT_CONFIG_ERROR = 2
EXIT_UNREACHABLE = 3

console = Console()
err_console = Console(stderr=True)

_PROGRESS_STYLES = (
    ("✅", "green"),
    ("❌", "red"),
    ("⚠️", "yellow"),
    ("ℹ️", "blue"),
    ("🔍", "magenta"),
    ("📋", "cyan"),
)


def progress_style(message: str) -> str:
    for glyph, style in _PROGRESS_STYLES:
        if message.startswith(glyph):
            return style
    return "dim"


def setup_logging(debug: bool = False):
    """Route library logging through rich, on stderr"""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


async def main_async(
    config: ValidatorConfig,
    source: Optional[ClusterSource] = None,
    json_output: bool = False,
) -> int:
    """Run one validation and print the report

    Returns:
        process exit code
    """
    # keep stdout clean for --json
    progress_console = err_console if json_output else console

    def progress_callback(message: str):
        """Print progress as it happens"""
        style = progress_style(message)
        progress_console.print(f"[{style}]{escape(message)}[/{style}]")

    validator = ClusterValidator(source, config, progress_callback)

    try:
        report = await validator.run()
    except (ClusterUnreachableError, RunTimeoutError) as e:
        err_console.print(f"[red]❌ {escape(e.message)}[/red]")
        return EXIT_UNREACHABLE

    if json_output:
        console.print_json(data=report.to_dict())
    else:
        render_report(report, console, verbose=config.verbose)

    return EXIT_OK if report.all_healthy else EXIT_ISSUES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cluster-validator",
        description="Comprehensive Kubernetes cluster validation with a consolidated delivery report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # check all namespaces
  %(prog)s -n production            # check the production namespace
  %(prog)s -c my-cluster -t 15      # specific context, 15s HTTP timeout
  %(prog)s -n default -v            # verbose report with per-URL results
  %(prog)s --debug                  # debug logging on stderr
  %(prog)s --fixture cluster.yaml   # offline run against a fixture file
        """
    )

    parser.add_argument("-n", "--namespace", help="check a specific namespace (default: all)")
    parser.add_argument("-c", "--context", help="kubectl context (default: current)")
    parser.add_argument("-t", "--timeout", type=float, help="HTTP timeout in seconds (default: 10)")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose report (per-URL endpoint table)")
    parser.add_argument("--debug", action="store_true", help="debug logging on stderr")
    parser.add_argument("--kubeconfig", help="kubeconfig path")
    parser.add_argument("--fixture", help="read cluster state from a YAML fixture instead of kubectl")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    parser.add_argument("--max-concurrency", type=int, help="concurrent collectors/probes (default: 5)")
    parser.add_argument("--run-timeout", type=float, help="deadline for the whole run in seconds")
    parser.add_argument(
        "--unavailable-policy",
        choices=[p.value for p in UnavailablePolicy],
        help="how domains that could not be retrieved are reported (default: warn)",
    )
    parser.add_argument("--insecure", action="store_true", help="skip TLS verification of ingress URLs")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None):
    """CLI entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    try:
        config = ValidatorConfig.from_env(
            namespace=args.namespace,
            context=args.context,
            kubeconfig=args.kubeconfig,
            timeout=args.timeout,
            verbose=True if args.verbose else None,
            max_concurrency=args.max_concurrency,
            run_timeout=args.run_timeout,
            unavailable_policy=args.unavailable_policy,
            verify_tls=False if args.insecure else None,
        )
    except ConfigurationError as e:
        err_console.print(f"[red]❌ {escape(e.message)}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)

    source = None
    if args.fixture:
        try:
            source = FixtureSource.from_yaml(args.fixture)
        except (OSError, ValueError, yaml.YAMLError) as e:
            err_console.print(f"[red]❌ Cannot load fixture {escape(args.fixture)}: {escape(str(e))}[/red]")
            sys.exit(EXIT_CONFIG_ERROR)

    try:
        exit_code = asyncio.run(main_async(config, source, json_output=args.json))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]⚠️  Interrupted[/yellow]")
        sys.exit(EXIT_ISSUES)


if __name__ == "__main__":
    main()
