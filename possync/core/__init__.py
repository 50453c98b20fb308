"""Core application components.

This module provides the foundational components for the sync engine:
- Application settings and configuration
- JSON persistence of integration state
"""
