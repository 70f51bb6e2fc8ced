"""Poll public weather providers and publish one JSON document per location."""

__version__ = "0.3.0"
