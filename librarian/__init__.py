"""Personal AI Librarian: оркестрация запросов к Gemini."""

__version__ = "1.0.0"
