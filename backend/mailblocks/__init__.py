"""
mailblocks - block-marker parsing and editing backend for AI-generated emails and posters
"""
__version__ = "1.0.0"
