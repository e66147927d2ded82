"""Generate stand-alone copies of templates that live inside a Cargo monorepo.

Templates developed inside a larger source tree refer to their sibling crates
through relative ``path`` dependencies. Once the template is copied out those
paths stop resolving, so detach pins every such dependency to a ``git``
revision of the upstream tree and turns the copy into a Cargo workspace of its
own.
"""

from __future__ import annotations

from .classifier import DEFAULT_UPSTREAM_URL, Classification, PinReference, classify, remap_entry
from .config import GeneratorConfig
from .discovery import find_manifests
from .errors import (
    ConfigError,
    DiscoveryError,
    GeneratorError,
    ManifestIOError,
    ParseError,
    PathError,
    ToolchainError,
)
from .generator import TemplateGenerator
from .manifest import Manifest, load, save
from .pipeline import RewriteReport, rewrite_tree
from .rewriter import rewrite_manifest
from .workspace import synthesize_workspace, workspace_members

__all__ = [
    "Classification",
    "ConfigError",
    "DEFAULT_UPSTREAM_URL",
    "DiscoveryError",
    "GeneratorConfig",
    "GeneratorError",
    "Manifest",
    "ManifestIOError",
    "ParseError",
    "PathError",
    "PinReference",
    "RewriteReport",
    "TemplateGenerator",
    "ToolchainError",
    "classify",
    "find_manifests",
    "load",
    "remap_entry",
    "rewrite_manifest",
    "rewrite_tree",
    "save",
    "synthesize_workspace",
    "workspace_members",
]

__version__ = "0.1.0"
