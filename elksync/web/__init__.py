"""HTTP control API for elk-sync."""
