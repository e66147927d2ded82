"""Command line interface for detach."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .classifier import DEFAULT_UPSTREAM_URL, PinReference
from .config import GeneratorConfig
from .errors import GeneratorError
from .generator import TemplateGenerator
from .manifest import MANIFEST_NAME
from .pipeline import RewriteReport, rewrite_tree


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer '{value}'") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("value must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate stand-alone copies of templates living inside a Cargo monorepo"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every manifest change",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="copy a template out of the upstream tree and make it stand-alone"
    )
    generate_parser.add_argument("config", type=Path, help="Path to the TOML configuration file")
    generate_parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the upstream checkout as-is instead of cloning or updating it",
    )
    generate_parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=1,
        help="Number of manifests rewritten in parallel",
    )

    rewrite_parser = subparsers.add_parser(
        "rewrite", help="pin the dependencies of an already copied template"
    )
    rewrite_parser.add_argument("output", type=Path, help="Root directory of the copied template")
    rewrite_parser.add_argument("--rev", required=True, help="Upstream commit to pin dependencies to")
    rewrite_parser.add_argument(
        "--git-url",
        default=DEFAULT_UPSTREAM_URL,
        help="Upstream repository URL written into pinned dependencies",
    )
    rewrite_parser.add_argument(
        "--manifest-name",
        default=MANIFEST_NAME,
        help="File name of the package manifests",
    )
    rewrite_parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=1,
        help="Number of manifests rewritten in parallel",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _summarize(report: RewriteReport) -> str:
    return (
        f"Pinned {report.remapped_count} dependencies in {len(report.manifests)} manifests "
        f"under {report.root} to {report.pin.rev}"
    )


def _handle_generate(args: argparse.Namespace) -> int:
    config = GeneratorConfig.from_file(args.config)
    generator = TemplateGenerator(config, max_workers=args.jobs)
    result = generator.generate(sync=not args.offline)
    print(_summarize(result.report))
    if result.archive is not None:
        print(f"Archive written to {result.archive}")
    return 0


def _handle_rewrite(args: argparse.Namespace) -> int:
    try:
        pin = PinReference(rev=args.rev, url=args.git_url)
    except ValueError as exc:
        raise GeneratorError(str(exc)) from exc
    report = rewrite_tree(
        args.output,
        pin,
        manifest_name=args.manifest_name,
        max_workers=args.jobs,
    )
    print(_summarize(report))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.command == "generate":
            return _handle_generate(args)
        if args.command == "rewrite":
            return _handle_rewrite(args)
    except GeneratorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    parser.error("no command provided")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
