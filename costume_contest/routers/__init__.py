"""API routers."""
from costume_contest.routers import admin, contest, entries, health, votes

__all__ = [
    "admin",
    "contest",
    "entries",
    "health",
    "votes",
]
