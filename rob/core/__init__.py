"""Core utilities, configuration store and git helpers for rob."""
