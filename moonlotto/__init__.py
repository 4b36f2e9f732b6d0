"""MoonLotto: lunar-calendar ticket generation and prize evaluation."""
from .astrology import LunarClock, LunarContext
from .games import DEFAULT_GAMES, GameDefinition, get_game
from .generator import generate_candidate, validate_candidate
from .hot_cold import build_profile
from .prizes import evaluate_candidate
from .strategies import Strategy

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_GAMES",
    "GameDefinition",
    "LunarClock",
    "LunarContext",
    "Strategy",
    "build_profile",
    "evaluate_candidate",
    "generate_candidate",
    "get_game",
    "validate_candidate",
]
