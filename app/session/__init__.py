"""Chat client session package: local conversation handle and proxy HTTP calls."""
