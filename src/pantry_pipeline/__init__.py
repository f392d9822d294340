"""
Pantry pipeline: headless core of the nutrition tracker client.

Captured photos go to the inference backend one at a time, the extracted
items are reconciled by a person, and the result is committed to the remote
inventory. Recipes can later be cooked against that inventory.
"""

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]
