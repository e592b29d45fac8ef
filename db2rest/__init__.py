"""Client and tooling for DB2 REST gateway service management."""

__version__ = "0.1.0"
