"""LDraw file access: library search, line grammar, recursive resolution, export."""
