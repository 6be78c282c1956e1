"""Page hierarchy, version snapshots and version comparison for documentation projects."""

__version__ = "0.1.0"
