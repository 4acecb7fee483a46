"""Presentation helpers for element records."""

from .formatting import format_element_info, format_element_summary, render_references

__all__ = ["format_element_info", "format_element_summary", "render_references"]
