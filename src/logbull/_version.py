"""
Fallback version module.

Release builds overwrite this file; source checkouts keep the default.
"""

__version__ = "0.1.0"
