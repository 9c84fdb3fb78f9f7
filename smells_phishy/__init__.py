"""Smells Phishy - two-layer phishing detection for email content."""

__version__ = "1.0.0"
