"""
friendscore: personalized weighted consensus scoring for shared ratings.

Turns per-user ordinal ratings of movies and restaurants into one "friend
score" per (viewer, item, dimension), weighted by how much the viewer trusts
each rater, with a sample-size confidence. Persistence goes through the
abstract data-access layer in friendscore.database.
"""

__version__ = "0.1.0"
