"""
Configuration package for the hostel allocation engine.

Environment settings and logging setup.
"""

from hostel_allocation.config.settings import settings, get_settings
from hostel_allocation.config.logging import get_logger, setup_logging

__all__ = ['settings', 'get_settings', 'get_logger', 'setup_logging']
