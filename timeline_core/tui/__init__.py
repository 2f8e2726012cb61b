"""TUI package for the timeline viewer."""
