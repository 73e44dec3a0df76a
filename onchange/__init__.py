"""
Onchange.

Runs a command and restarts it whenever the watched directory changes.
Requires Python 3.11+.
"""

__version__ = "0.1.0"
