"""HTTP API for sessions, activity history and statistics."""
