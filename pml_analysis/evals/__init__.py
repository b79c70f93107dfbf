"""Exploration plots, model evaluation and reporting."""
