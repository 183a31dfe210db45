"""
Entry point for running the detection feed as a module.

Usage:
    python -m detection_feed [hours]
"""

from .cli import main

if __name__ == "__main__":
    main()
