"""http frontend."""
