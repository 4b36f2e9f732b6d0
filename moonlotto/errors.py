# moonlotto/errors.py
from __future__ import annotations


class MoonLottoError(Exception):
    """Base class for every error raised by moonlotto."""


class InvalidGameConfig(MoonLottoError, ValueError):
    """Unknown game slug or a game definition that cannot produce a valid ticket."""


class GenerationConstraintUnsatisfiable(MoonLottoError, RuntimeError):
    """A bounded construction loop ran out of attempts.

    Strategies catch this themselves and fall back to a seeded-random set.
    """


class BoundaryCrossingNotFound(MoonLottoError, RuntimeError):
    """The coarse scan hit its horizon without seeing the index change."""


class UnparseableMatchLabel(MoonLottoError, ValueError):
    """A prize-tier label matched none of the known label patterns."""


class UnrecognizedPrizeAmount(MoonLottoError, ValueError):
    """A prize amount could not be read as money, FREE PLAY or a lifetime prize."""
