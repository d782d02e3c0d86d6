"""
Stay Caffeinated - workday survival simulation engine.

The gameplay package models caffeine, health and score; the engine package
drives it tick by tick; the persistence package stores achievements and
settings. NO UI DEPENDENCIES.
"""

__version__ = "0.1.0"
