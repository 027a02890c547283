"""Version selection: reduce a registry's version list to the versions worth testing.

Ranges use npm range grammar (caret, tilde, x-ranges, hyphen ranges and
"||" unions) via semantic_version.NpmSpec.
"""

import logging
from collections.abc import Callable, Iterable

from semantic_version import NpmSpec, Version

from .models import PackageSpec

logger = logging.getLogger(__name__)

MODES = ("major", "minor", "patch", "all")


def parse_version(raw: str) -> Version | None:
    """Parse a strict semantic version, returning None if it is not one."""
    try:
        return Version(raw)
    except ValueError:
        return None


def version_sort_key(raw: str) -> tuple[Version, str]:
    """Sort key tolerating loose pins such as "1.2" (coerced to 1.2.0)."""
    parsed = parse_version(raw)
    if parsed is None:
        try:
            parsed = Version.coerce(raw)
        except ValueError:
            parsed = Version("0.0.0")
    return parsed, raw


def stable_versions(available: Iterable[str]) -> list[tuple[Version, str]]:
    """Parse, drop pre-releases and unparsable keys, and sort ascending."""
    parsed = []
    for raw in available:
        version = parse_version(raw)
        if version is None or version.prerelease:
            continue
        parsed.append((version, raw))
    parsed.sort(key=lambda item: item[0])
    return parsed


def _line_key(mode: str) -> Callable[[Version], tuple[int, ...]] | None:
    if mode == "major":
        return lambda v: (v.major,)
    if mode == "minor":
        return lambda v: (v.major, v.minor)
    if mode in ("patch", "all"):
        return None
    raise ValueError(f"Unknown version mode {mode!r}, expected one of {MODES}")


def collapse_per_mode(
    versions: list[tuple[Version, str]], mode: str
) -> list[tuple[Version, str]]:
    """Keep the highest version of every release line for the given mode.

    Args:
        versions: Parsed versions sorted ascending.
        mode: "major", "minor", or "patch"/"all" to keep everything.
    """
    key = _line_key(mode)
    if key is None:
        return list(versions)

    highest: dict[tuple[int, ...], tuple[Version, str]] = {}
    for item in versions:
        highest[key(item[0])] = item  # ascending, so the last one wins
    return sorted(highest.values(), key=lambda item: item[0])


def satisfying(
    versions: list[tuple[Version, str]], semver_range: str
) -> list[tuple[Version, str]]:
    """Filter versions by an npm range.

    Raises:
        ValueError: If the range cannot be parsed.
    """
    spec = NpmSpec(semver_range)
    return [item for item in versions if spec.match(item[0])]


def max_versions_per_mode(
    available: Iterable[str], mode: str, pkg: PackageSpec
) -> list[str]:
    """Select the ordered list of versions to test for one package.

    Every semver range contributes its satisfying versions collapsed per
    mode; latest_requested contributes the highest stable version; static
    pins are kept verbatim. The result is de-duplicated and ascending.

    Raises:
        ValueError: On an unknown mode or an unparsable range.
    """
    _line_key(mode)
    stable = stable_versions(available)
    selected: set[str] = set()

    for semver_range in pkg.semver_ranges:
        matches = collapse_per_mode(satisfying(stable, semver_range), mode)
        logger.debug(
            f"{pkg.name} {semver_range!r}: {len(matches)} versions in {mode} mode"
        )
        selected.update(raw for _, raw in matches)

    if pkg.latest_requested and stable:
        selected.add(stable[-1][1])

    selected.update(pkg.static_versions)
    return sorted(selected, key=version_sort_key)
