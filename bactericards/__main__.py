"""
Entry point for running BacteriCards as a module.

Usage:
    python -m bactericards study --deck bacteries.json
    python -m bactericards stats
    python -m bactericards --help
"""
from .cli import main

if __name__ == "__main__":
    main()
