"""Cross-cutting infrastructure: settings, logging, sessions and templates."""
