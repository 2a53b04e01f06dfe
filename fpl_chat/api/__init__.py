"""HTTP API for the chat assistant."""
