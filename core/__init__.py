"""
Core Components.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business logic separated from models
    errors.py: Error codes and classification
    concurrency.py: Keyed locks and single-flight execution
"""

from . import logic
from . import models

__all__ = [
    'models',
    'logic',
]
