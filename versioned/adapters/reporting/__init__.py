"""Suite progress reporters."""

from .stdout import StdoutReporter

__all__ = ["StdoutReporter"]
