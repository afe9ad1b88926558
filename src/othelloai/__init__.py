"""othelloai package."""

from .engine import (  # noqa: F401
    Board,
    Cell,
    GameState,
    Move,
    apply_move,
    deserialize_state,
    initial_state,
    serialize_state,
)
from .errors import (  # noqa: F401
    ConfigurationError,
    CorruptStateError,
    IllegalMoveError,
    TerminalStateQueryError,
)
from .ai import (  # noqa: F401
    QLearningAgent,
    QTable,
    SearchEngine,
    TrainingConfig,
    TrainingCoordinator,
    train_self_play,
)
from .players import PlayerAdapter, parse_player_config  # noqa: F401

__all__ = [
    "__version__",
    "Board",
    "Cell",
    "GameState",
    "Move",
    "apply_move",
    "deserialize_state",
    "initial_state",
    "serialize_state",
    "ConfigurationError",
    "CorruptStateError",
    "IllegalMoveError",
    "TerminalStateQueryError",
    "QLearningAgent",
    "QTable",
    "SearchEngine",
    "TrainingConfig",
    "TrainingCoordinator",
    "train_self_play",
    "PlayerAdapter",
    "parse_player_config",
    "create_app",
]

__version__ = "0.1.0"


def create_app():
    """Lazy import to avoid requiring FastAPI unless requested."""
    from othelloai.api import create_app as factory

    return factory()
