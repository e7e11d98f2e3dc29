"""Business logic: catalog access, resolution, bundling."""
