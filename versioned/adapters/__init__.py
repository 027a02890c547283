"""External adapters for the versioned test orchestrator.

This package contains all external dependencies (the npm registry over
HTTP, subprocess runners, terminal output) and provides implementations
of the core port interfaces.

Adapter Organization:

- registry/: Adapters for listing published package versions (npm)
- runner/: Adapters that install and run one matrix entry (subprocess)
- reporting/: Suite observers that present progress (stdout)
"""
