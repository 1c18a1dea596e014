"""Database access and application services."""
