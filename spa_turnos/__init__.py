"""Sentirse Bien spa booking client."""

__version__ = "0.1.0"
