"""
productbot - a knowledge-base backed product assistant for Discord.
"""

__version__ = "0.1.0"
__logo__ = "🤖"
