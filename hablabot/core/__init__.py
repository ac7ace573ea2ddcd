"""Core learning algorithms."""
