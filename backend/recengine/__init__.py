"""Collaborative recommendations from like/dislike signals stored in Redis"""

__version__ = "1.0.0"
