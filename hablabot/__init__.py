"""HablaBot: Spanish conversation practice with spaced-repetition vocabulary."""

__version__ = "0.1.0"
