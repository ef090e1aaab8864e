"""KushL task marketplace: storage-backed data layer and JSON API."""

__version__ = "0.3.0"
