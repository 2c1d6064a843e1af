"""Leadflow — CRM lead enrichment service."""

__version__ = "1.0.0"
