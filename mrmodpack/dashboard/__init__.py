"""Web routes."""
