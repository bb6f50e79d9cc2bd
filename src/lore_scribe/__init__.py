# ABOUTME: Lore Scribe package root
# ABOUTME: Turns exported world-building records into a Markdown document tree

__version__ = "0.1.0"
