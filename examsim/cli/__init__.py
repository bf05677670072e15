"""CLI utilities for examsim.

Modules under this package expose small command-line helpers that stand in
for the app's file picker, storage and sharing collaborators.
"""

from .main import main

__all__ = ["main"]
