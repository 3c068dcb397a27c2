"""Connector proxy for the MiniTandem onboarding dashboard."""

__version__ = "1.0.0"
