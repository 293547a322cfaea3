"""Flask web service for motorcycle maintenance tracking."""
