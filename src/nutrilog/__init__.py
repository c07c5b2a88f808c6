"""Nutrilog: asynchronous food-log parsing and nutrient normalization."""

__version__ = "1.0.0"
