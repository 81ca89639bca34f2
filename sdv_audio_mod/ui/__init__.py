"""PySide6 desktop front end (optional ``gui`` extra)."""
