"""Exception types raised by the engine, the AI players and persistence."""


class OthelloError(Exception):
    """Base exception for othelloai errors."""


class IllegalMoveError(OthelloError, ValueError):
    """A requested move is not in the legal set for the side to move."""


class TerminalStateQueryError(OthelloError, RuntimeError):
    """A move was requested for a finished game."""


class CorruptStateError(OthelloError, ValueError):
    """A persisted Q-table could not be decoded."""


class ConfigurationError(OthelloError, ValueError):
    """Invalid player or training parameters."""
