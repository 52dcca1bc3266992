"""
Entry point for running wortdrill as a module.

Usage:
    python -m wortdrill study
    python -m wortdrill stats
    python -m wortdrill --help
"""
from .cli import main

if __name__ == "__main__":
    main()
