"""AI components: heuristics, tree search, Q-learning, self-play and training."""

from .agent import QLearningAgent  # noqa: F401
from .qtable import QTable  # noqa: F401
from .search import Algorithm, SearchEngine  # noqa: F401
from .train import TrainingConfig, TrainingCoordinator, train_self_play  # noqa: F401
