"""CLI module for productbot."""
