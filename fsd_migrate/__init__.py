"""fsd-migrate: analyze, back up, and migrate existing web projects."""

__version__ = "0.1.0"
