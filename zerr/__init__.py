"""Audio feature extraction, envelope mixing and speaker-array envelope generation."""

__version__ = "0.1.0"