"""Test suite for the versioned test orchestrator.

Organized into three categories:

1. core/: Unit tests for core scheduling logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for adapter implementations
   - npm registry over a mocked httpx transport
   - Subprocess runner against real short-lived processes

3. fakes/: Port implementations for testing
   - In-memory implementations of RegistryPort, SchedulableTestPort, etc.
   - Used by core unit tests
"""
