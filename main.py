#!/usr/bin/env python3
"""
Main entry point for the Twitch chat bot
"""

from src.main import run

if __name__ == "__main__":
    run()
