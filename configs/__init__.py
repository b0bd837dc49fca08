"""Bundled YAML configuration (tracking.yaml holds every default)."""
