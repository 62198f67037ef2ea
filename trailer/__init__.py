"""trailer: TestRail result upload and cross-account migration."""

__version__ = "0.2.0"
