"""Exception types raised by the versioned core and its adapters."""


class VersionedError(Exception):
    """Base class for orchestrator errors."""


class RegistryError(VersionedError):
    """A package registry lookup failed."""

    def __init__(self, package: str, message: str):
        self.package = package
        super().__init__(f"{package}: {message}")


class ResolutionError(VersionedError):
    """Version resolution failed for the suite; fatal to the whole run."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"Failed to retrieve package information: {cause}")
