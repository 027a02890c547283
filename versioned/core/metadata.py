"""Package metadata aggregation across test declarations.

Scans every test declared by the suite's test folders and merges the
version requests for each distinct dependency into one PackageSpec.
"""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .models import PackageSpec

logger = logging.getLogger(__name__)

LATEST = "latest"

# Starts with a digit and does not end in "." or "x": 3.0.0 is a pin, 3.x is not.
_STATIC_PIN = re.compile(r"^\d.*[^.x]$")


def is_static_pin(spec: str) -> bool:
    """Return True if spec has the syntactic shape of an exact version."""
    return bool(_STATIC_PIN.match(spec))


def classify_version_spec(spec: str) -> str:
    """Classify a version specifier as "latest", "static" or "range"."""
    if spec == LATEST:
        return "latest"
    if is_static_pin(spec):
        return "static"
    return "range"


def get_version_spec(dependency: str | Mapping[str, Any]) -> str:
    """Extract the version specifier from a string or {"versions": ...} object."""
    if isinstance(dependency, Mapping):
        return dependency["versions"]
    return dependency


def load_test_declarations(folder: str | Path) -> list[dict[str, Any]]:
    """Read the test declarations from a test folder's package.json.

    Raises:
        FileNotFoundError: If the folder has no package.json.
        json.JSONDecodeError: If package.json is not valid JSON.
    """
    path = Path(folder) / "package.json"
    with path.open(encoding="utf-8") as fh:
        package = json.load(fh)
    return list(package.get("tests") or [])


class PackageMetadataBuilder:
    """Accumulates PackageSpecs keyed by dependency name.

    Repeated calls keep merging into the same specs; duplicate ranges or
    pins are tolerated because resolution de-duplicates them.
    """

    def __init__(self, pkgs_meta: dict[str, PackageSpec] | None = None) -> None:
        self.pkgs_meta: dict[str, PackageSpec] = {} if pkgs_meta is None else pkgs_meta

    def add_declarations(self, declarations: Iterable[Mapping[str, Any]]) -> None:
        """Fold every dependency of every declaration into the metadata.

        Raises:
            KeyError: If a declaration has no "dependencies" field.
        """
        for test in declarations:
            for name, dependency in test["dependencies"].items():
                self.add(name, get_version_spec(dependency))

    def add(self, name: str, spec: str) -> PackageSpec:
        """Merge one version specifier into the named dependency's spec."""
        pkg = self.pkgs_meta.get(name)
        if pkg is None:
            pkg = PackageSpec(name=name)
            self.pkgs_meta[name] = pkg

        kind = classify_version_spec(spec)
        if kind == "latest":
            pkg.latest_requested = True
        elif kind == "static":
            pkg.static_versions.append(spec)
        else:
            pkg.semver_ranges.append(spec)
        return pkg


def build_package_metadata(
    folders: Iterable[str | Path], pkgs_meta: dict[str, PackageSpec] | None = None
) -> dict[str, PackageSpec]:
    """Build the merged PackageSpecs for every test in the given folders.

    Merges into pkgs_meta when given, otherwise into a new mapping.
    """
    builder = PackageMetadataBuilder(pkgs_meta)
    for folder in folders:
        declarations = load_test_declarations(folder)
        logger.debug(f"{folder}: {len(declarations)} test declarations")
        builder.add_declarations(declarations)
    return builder.pkgs_meta
