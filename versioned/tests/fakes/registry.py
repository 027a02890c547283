"""Fake RegistryPort implementation for testing."""

import asyncio
from collections.abc import Mapping
from typing import Any

from versioned.core.errors import RegistryError
from versioned.core.ports import RegistryPort


class FakeRegistryPort(RegistryPort):
    """In-memory registry for testing.

    Allows tests to pre-populate version lists, inject failures for
    specific packages and observe how many lookups were in flight at once.
    """

    def __init__(self, delay: float = 0.0) -> None:
        """Initialize with an empty registry.

        Args:
            delay: Seconds each lookup sleeps before answering.
        """
        self.packages: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add_package(self, name: str, versions: list[str]) -> None:
        """Publish versions of a package."""
        self.packages[name] = {version: {"version": version} for version in versions}

    def set_error(self, name: str, error: Exception | None = None) -> None:
        """Make lookups of name raise error (a RegistryError by default)."""
        self.failures[name] = error or RegistryError(name, "lookup failed")

    def set_delay(self, name: str, delay: float) -> None:
        """Override the lookup delay for one package."""
        self.delays[name] = delay

    async def load(self, package: str) -> Mapping[str, Any]:
        """Return the versions of package after the configured delay."""
        self.calls.append(package)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(package, self.delay))
            if package in self.failures:
                raise self.failures[package]
            if package not in self.packages:
                raise RegistryError(package, "not found")
            return self.packages[package]
        finally:
            self.in_flight -= 1
