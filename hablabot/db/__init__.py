"""Database engine, models and helpers."""
