"""
Gallery Harvester Test Suite

Structure:
- unit/: Fast, isolated unit tests (no browser; pages are scripted fakes)
"""
