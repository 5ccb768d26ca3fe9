"""Core inspection services for simlog-inspector."""
