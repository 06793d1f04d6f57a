"""
Test suite for the Algua trading platform.

This module contains:
- Unit tests for all core components
- Integration tests for trading workflows  
- Mock data and fixtures
- Performance benchmarks
"""

__version__ = "1.0.0" 