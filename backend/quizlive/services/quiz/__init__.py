"""Quiz domain services: clock, scoring, state machine, sync and fanout.

This package contains the game logic imported by HTTP routes and socket
handlers, keeping transport concerns separated from quiz mechanics.
"""
