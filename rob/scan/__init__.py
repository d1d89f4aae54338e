"""Concurrent filesystem scanning: tree walker, fingerprints, tag locator."""
