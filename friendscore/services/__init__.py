"""
Services that mutate source-of-truth data and keep friend scores in step.
"""

from friendscore.services.ratings import RatingMutation, RatingService

__all__ = ["RatingMutation", "RatingService"]
