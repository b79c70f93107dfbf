"""Exploratory analysis and exercise-quality prediction for the Weight Lifting Exercise data."""

__version__ = "0.1.0"
