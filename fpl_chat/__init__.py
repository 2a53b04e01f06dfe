"""FPL chat assistant: streaming, tool-augmented chat engine."""

__version__ = "0.1.0"
