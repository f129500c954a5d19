"""Wire models for external services."""
