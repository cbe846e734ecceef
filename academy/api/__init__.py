"""Presentation layer: FastAPI dependencies (composition root)."""
