"""
Pinion CLI.

Usage:
    pinion routes <path>
    pinion run <path> [--host HOST] [--port PORT] [--mode MODE]
"""

from .. import __version__

__cli_name__ = "pinion"
