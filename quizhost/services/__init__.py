"""Room domain services: registry, sessions, question cycle, scoring.

This package contains the game logic that socket handlers call into,
keeping transport concerns separated from room state and transitions.
"""


class QuizHost:
    """The services one Flask app wires together, stored in ``app.extensions``."""

    def __init__(self, registry, gateway, sessions, cycle):
        self.registry = registry
        self.gateway = gateway
        self.sessions = sessions
        self.cycle = cycle
