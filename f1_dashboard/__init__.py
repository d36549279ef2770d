"""
F1 statistics data core: cached, multi-source season calendars, standings
and results for the Japanese dashboard.
"""
__version__ = "1.0.0"
