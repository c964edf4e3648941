"""HTTP/WebSocket host for the simulation engine."""
