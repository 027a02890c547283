"""Package registry adapters."""

from .npm import NpmRegistryAdapter

__all__ = ["NpmRegistryAdapter"]
