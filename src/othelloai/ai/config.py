"""Player configurations: which component answers "what move?" for a seat.

The text form used by the CLI and the API is ``human``, ``minimax:<depth>``,
``alphabeta:<depth>`` or ``qlearning[:<epsilon>]``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from othelloai.errors import ConfigurationError

from .heuristic import HeuristicMatrix, HeuristicType, coerce_heuristic, coerce_matrix
from .search import Algorithm, validate_depth

MAX_DEPTH = 5


@dataclass(frozen=True)
class HumanConfig:
    kind: ClassVar[str] = "human"

    def describe(self) -> str:
        return self.kind


@dataclass(frozen=True)
class _SearchConfig:
    depth: int = MAX_DEPTH
    heuristic: HeuristicType = HeuristicType.GLOBAL
    matrix: HeuristicMatrix = HeuristicMatrix.A

    algorithm: ClassVar[Algorithm]

    def __post_init__(self) -> None:
        validate_depth(self.depth)
        object.__setattr__(self, "heuristic", coerce_heuristic(self.heuristic))
        object.__setattr__(self, "matrix", coerce_matrix(self.matrix))

    def describe(self) -> str:
        return f"{self.algorithm.value}:{self.depth}"


@dataclass(frozen=True)
class MinimaxConfig(_SearchConfig):
    algorithm: ClassVar[Algorithm] = Algorithm.MINIMAX


@dataclass(frozen=True)
class AlphaBetaConfig(_SearchConfig):
    algorithm: ClassVar[Algorithm] = Algorithm.ALPHABETA


@dataclass(frozen=True)
class QLearningConfig:
    epsilon: float = 0.0

    kind: ClassVar[str] = "qlearning"

    def __post_init__(self) -> None:
        eps = self.epsilon
        if isinstance(eps, bool) or not isinstance(eps, (int, float)) or not 0.0 <= eps <= 1.0:
            raise ConfigurationError(f"epsilon must be within [0, 1], got {eps!r}")

    def describe(self) -> str:
        return f"{self.kind}:{self.epsilon:g}"


PlayerConfig = Union[HumanConfig, MinimaxConfig, AlphaBetaConfig, QLearningConfig]


def parse_player_config(
    text: str,
    heuristic: Union[str, HeuristicType] = HeuristicType.GLOBAL,
    matrix: Union[str, HeuristicMatrix] = HeuristicMatrix.A,
) -> PlayerConfig:
    kind, _, param = text.strip().lower().partition(":")
    kind = kind.replace("-", "")
    if kind == "human":
        if param:
            raise ConfigurationError("human players take no parameter")
        return HumanConfig()
    if kind in ("minimax", "alphabeta"):
        depth = MAX_DEPTH
        if param:
            try:
                depth = int(param)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid search depth: {param!r}") from exc
        cls = MinimaxConfig if kind == "minimax" else AlphaBetaConfig
        return cls(depth=depth, heuristic=heuristic, matrix=matrix)
    if kind == "qlearning":
        epsilon = 0.0
        if param:
            try:
                epsilon = float(param)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid epsilon: {param!r}") from exc
        return QLearningConfig(epsilon=epsilon)
    raise ConfigurationError(f"Unknown player kind: {text!r}")
