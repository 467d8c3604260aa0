"""JSON-schema contracts for rule tables and analysis results."""
