"""Core async building blocks."""
