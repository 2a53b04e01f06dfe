"""Chat services: request control, history and the server tool loop."""
