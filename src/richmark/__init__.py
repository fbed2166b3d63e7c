"""Regex-driven markdown styling for rich text buffers."""
