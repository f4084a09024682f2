"""Asciicast timeline engine: parse, replay and render agent terminal sessions."""

__version__ = "0.1.0"
