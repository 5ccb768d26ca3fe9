"""HTTP surface of simlog-inspector: routes and response schemas."""
