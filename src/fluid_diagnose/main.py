"""CLI entrypoint for fluid-diagnose."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from fluid_diagnose import __version__
from fluid_diagnose.config import get_settings
from fluid_diagnose.gateway import DatasetNotFoundError
from fluid_diagnose.pipeline import print_context, print_result, run_diagnosis


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fluid-diagnose",
        description="Diagnose Fluid Datasets: collect CR snapshots, events, pod status and logs, "
        "detect known failure patterns and emit a report or an AI-ready JSON context.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="resource", required=True)

    dataset = subparsers.add_parser(
        "dataset",
        help="Diagnose a Fluid Dataset and its runtime",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    dataset.add_argument("name", help="Name of the Dataset")
    dataset.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace of the Dataset (default: from env or 'default')",
    )
    dataset.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    dataset.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    dataset.add_argument(
        "--output",
        "-o",
        choices=("text", "json"),
        default=None,
        help="Output format: text report or AI-ready JSON context (default: from env or 'text')",
    )
    dataset.add_argument(
        "--mock",
        action="store_true",
        help="Use simulated Fluid resources; no Kubernetes cluster required",
    )
    dataset.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for fluid-diagnose CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=Console(stderr=True))],
    )
    logger = logging.getLogger("fluid_diagnose")
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    try:
        settings = get_settings()
        if args.kubeconfig:
            settings.kubeconfig = args.kubeconfig
        if args.output:
            settings.output = args.output

        run = run_diagnosis(
            name=args.name,
            namespace=args.namespace,
            context=args.context,
            mock=args.mock,
            settings=settings,
        )
        if settings.output == "json":
            print_context(run, Console())
        else:
            print_result(run, Console())
        return 0
    except DatasetNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logging.exception("Diagnosis failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
