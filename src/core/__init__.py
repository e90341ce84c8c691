"""Configuration, errors, identifiers and SQLite access."""
