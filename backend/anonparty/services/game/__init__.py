"""Game domain services: room registry, round state machine, roster and scoring.

This package contains the room/round coordination core. HTTP routes and
socket handlers import it, keeping transport concerns separated from core
game mechanics. Every mutating function runs as one store transaction.
"""
