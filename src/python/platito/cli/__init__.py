"""Platito CLI package."""
