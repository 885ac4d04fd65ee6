"""Parsers that turn remote probe output into hardware descriptions."""
