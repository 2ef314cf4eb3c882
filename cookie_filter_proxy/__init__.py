"""
Cookie Filter Proxy - single-origin forwarding proxy with cookie filtering.
"""

__version__ = "0.1.0"
