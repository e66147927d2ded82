"""End-to-end generation of a stand-alone template."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import toolchain, upstream
from .classifier import PinReference
from .config import GeneratorConfig
from .pipeline import RewriteReport, rewrite_tree

__all__ = ["GenerationResult", "TemplateGenerator"]


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationResult:
    """Everything a generation run produced."""

    output_path: Path
    report: RewriteReport
    archive: Path | None = None
    copied_rustfmt: bool = False


@dataclass(slots=True)
class TemplateGenerator:
    """Extract the configured template and make it build on its own."""

    config: GeneratorConfig
    max_workers: int | None = field(default=None)

    def pin(self) -> PinReference:
        """Pin reference for the revision currently checked out upstream."""

        commit = upstream.head_commit(self.config.upstream.source_path)
        return PinReference(rev=commit, url=self.config.upstream.pin_url)

    def generate(self, *, sync: bool = True) -> GenerationResult:
        """Run every step of the generation.

        Parameters
        ----------
        sync:
            Clone or update the upstream checkout before copying. Disable to
            work from an existing checkout as-is.
        """

        source = self.config.upstream
        output = self.config.output

        if sync:
            upstream.sync(source)

        toolchain.copy_template(source.template_path, output.path, overwrite=output.overwrite)

        pin = self.pin()
        package_metadata = output.package.metadata() if output.package is not None else None
        report = rewrite_tree(
            output.path,
            pin,
            max_workers=self.max_workers,
            package_metadata=package_metadata,
        )

        copied_rustfmt = toolchain.copy_rustfmt(source.source_path, output.path)

        if output.build or output.test:
            toolchain.check_and_test(
                output.path,
                [result.path for result in report.manifests],
                check=True,
                test=output.test,
            )

        archive = None
        if output.zip:
            archive = toolchain.archive(output.path, output.archive_name)

        LOGGER.info("Generated stand-alone template at %s", output.path)
        return GenerationResult(
            output_path=output.path,
            report=report,
            archive=archive,
            copied_rustfmt=copied_rustfmt,
        )
