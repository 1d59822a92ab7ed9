"""Barber Booth: four-view hairstyle generation on top of Gemini image and video models."""

__version__ = "0.1.0"
