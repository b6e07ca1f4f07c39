"""
TurnSync - Client engine for asynchronous turn-based games.

Keeps a client-held snapshot of a two-player game in step with a remote
authority and composes, previews and submits moves for four variants:
- word placement on a grid
- fleet setup and shots on a grid
- code breaking
- tile matching

The authority decides everything that counts (scores, words, hits,
feedback pegs, matches). The client only checks enough locally to give
instant feedback and to never send the same move twice.
"""

__version__ = "0.1.0"
