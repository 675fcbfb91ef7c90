"""mysqlgate: permission-gated MySQL access for AI agents."""

__version__ = "0.1.0"
