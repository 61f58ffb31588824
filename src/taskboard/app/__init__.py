"""Taskboard web application package."""
