"""Reading comprehension quiz service backed by Gemini."""

__version__ = "0.1.0"
