"""Textual viewer."""
