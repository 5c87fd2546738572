"""Input discovery and the audit scheduler."""
