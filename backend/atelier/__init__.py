"""Atelier ERP - bespoke order production workflow."""
__version__ = "1.0.0"
