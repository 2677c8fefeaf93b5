"""
Gallery harvester.

Scroll an infinite media gallery in a headless browser, collect every
image and video it shows or fetches, and write them as one ordered JSON feed.
"""

__version__ = "0.1.0"
