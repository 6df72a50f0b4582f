"""Leaderboard domain services: device identities, score submission and ranking.

These modules hold the domain rules and are called by the HTTP routes,
keeping request parsing and response shaping out of the core logic.
"""
