"""Configuration and version parsing helpers."""
