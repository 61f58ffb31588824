"""JSON API surface of the application."""
