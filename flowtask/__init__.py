"""
flowtask - assembles Flow collaboration tasks into a single normalized view.
"""

__version__ = "0.1.0"
