# moonlotto/prizes.py
"""
Prize-tier evaluation.

Rules come from the prize breakdown published with a draw when one is
available, otherwise from the static per-game tables below. The first rule
(in table order) whose main-match count and bonus/grand requirement agree
with the ticket wins.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import InvalidGameConfig, UnparseableMatchLabel, UnrecognizedPrizeAmount
from .games import GameDefinition
from .models import Amount, DrawRecord, EvaluationResult, PrizeRule, PrizeShare

logger = logging.getLogger(__name__)

FREE_PLAY = "FREE PLAY"


def _r(main, bonus, category, value, text, grand=False) -> PrizeRule:
    return PrizeRule(match_main=main, match_bonus=bonus, category=category,
                     prize_value=value, prize_text=text, match_grand=grand)


PRIZE_TABLES: Dict[str, List[PrizeRule]] = {
    "lotto-max": [
        _r(7, False, "7/7", 70_000_000, "$70,000,000"),
        _r(6, True, "6/7 + Bonus", 196_159, "$196,159"),
        _r(6, False, "6/7", 4_440, "$4,440"),
        _r(5, True, "5/7 + Bonus", 960, "$960"),
        _r(5, False, "5/7", 122, "$122"),
        _r(4, True, "4/7 + Bonus", 56, "$56"),
        _r(4, False, "4/7", 20, "$20"),
        _r(3, True, "3/7 + Bonus", 20, "$20"),
        _r(3, False, "3/7", 5, FREE_PLAY),
    ],
    "lotto-649": [
        _r(6, False, "6/6", 5_000_000, "$5,000,000"),
        _r(5, True, "5/6 + Bonus", 104_177, "$104,177"),
        _r(5, False, "5/6", 1_042, "$1,042"),
        _r(4, False, "4/6", 78, "$78"),
        _r(3, False, "3/6", 10, "$10"),
        _r(2, True, "2/6 + Bonus", 5, "$5"),
        _r(2, False, "2/6", 3, FREE_PLAY),
    ],
    "daily-grand": [
        _r(5, False, "5/5 + GN", None, "$1,000 a DAY for LIFE", grand=True),
        _r(5, False, "5/5", None, "$25,000 a YEAR for LIFE"),
        _r(4, False, "4/5 + GN", 1_000, "$1,000", grand=True),
        _r(4, False, "4/5", 500, "$500"),
        _r(3, False, "3/5 + GN", 100, "$100", grand=True),
        _r(3, False, "3/5", 20, "$20"),
        _r(2, False, "2/5 + GN", 10, "$10", grand=True),
        _r(1, False, "1/5 + GN", 4, "$4", grand=True),
        _r(0, False, "GN Only", 3, FREE_PLAY, grand=True),
    ],
    "lottario": [
        _r(6, False, "6/6", 250_000, "$250,000"),
        _r(5, True, "5/6 + Bonus", 10_000, "$10,000"),
        _r(5, False, "5/6", 500, "$500"),
        _r(4, True, "4/6 + Bonus", 30, "$30"),
        _r(4, False, "4/6", 10, "$10"),
        _r(3, True, "3/6 + Bonus", 5, "$5"),
        _r(3, False, "3/6", 4, "$4"),
        _r(0, True, "0/6 + Bonus", 1, FREE_PLAY),
    ],
}

# ---- Label grammar ----
_LABEL_PLAIN = re.compile(r"(\d+) ?/ ?(\d+)")
_LABEL_BONUS = re.compile(r"(\d+) ?/ ?(\d+) ?\+ ?BONUS")
_LABEL_PLUS = re.compile(r"(\d+)\+ ?/ ?(\d+)")
_LABEL_GRAND = re.compile(r"(\d+) ?/ ?5 ?\+ ?GN")


def _normalize_label(label: str) -> str:
    return re.sub(r"\s+", " ", str(label or "")).strip().upper()


def parse_match_label(label: str, game: GameDefinition) -> Tuple[int, bool, bool]:
    """(main matches, bonus required, grand number required) for a tier label."""
    text = _normalize_label(label)
    if game.uses_grand_number:
        m = _LABEL_GRAND.fullmatch(text)
        if m:
            return int(m.group(1)), False, True
    m = _LABEL_BONUS.fullmatch(text) or _LABEL_PLUS.fullmatch(text)
    if m:
        return int(m.group(1)), True, False
    m = _LABEL_PLAIN.fullmatch(text)
    if m:
        return int(m.group(1)), False, False
    raise UnparseableMatchLabel(f"{game.slug}: unrecognized prize tier label {label!r}")


# ---- Amounts ----
_AMOUNT_RE = re.compile(r"\$?\s*([0-9]+(?:\.[0-9]+)?)\s*(billion|million|m|b)?\b", re.I)
# digit-group separators: commas, spaces, no-break and narrow no-break spaces
_GROUP_SEP_RE = re.compile(r"(?<=\d)[,\s\u00a0\u202f]+(?=\d)")


def normalize_amount_text(amount: Amount) -> str:
    """Plain text, or the 'en' entry of a language-tagged list (else the first entry)."""
    if isinstance(amount, (list, tuple)):
        if not amount:
            return ""
        english = next((a for a in amount if a.get("@lang") == "en"), amount[0])
        return str(english.get("#text", "")).strip()
    return str(amount or "").strip()


def _parse_usd(text: str) -> Optional[float]:
    # $1,234.50, 1234, $1 000, 1 250 $, $1.2 Million, $2 Billion
    s = _GROUP_SEP_RE.sub("", text).strip()
    m = _AMOUNT_RE.search(s)
    if not m:
        return None
    num = float(m.group(1))
    unit = (m.group(2) or "").lower()
    if unit in ("billion", "b"):
        return num * 1_000_000_000
    if unit in ("million", "m"):
        return num * 1_000_000
    return num


def parse_prize_value(text: str, game_cost: Optional[float] = None) -> Optional[float]:
    """
    FREE PLAY is worth the play price (0 when unknown); lifetime annuities are
    not comparable and give None. Anything else must read as money.
    """
    upper = (text or "").upper()
    if FREE_PLAY in upper:
        return float(game_cost) if game_cost is not None else 0.0
    if "LIFE" in upper:
        return None
    value = _parse_usd(text or "")
    if value is None:
        raise UnrecognizedPrizeAmount(f"cannot read prize amount {text!r}")
    return value


# ---- Rules ----
def build_prize_rules(
    game: GameDefinition,
    prize_shares: Iterable[Union[PrizeShare, dict]],
    game_cost: Optional[float] = None,
) -> List[PrizeRule]:
    rules: List[PrizeRule] = []
    for share in prize_shares:
        if not isinstance(share, PrizeShare):
            share = PrizeShare.from_dict(share)
        try:
            main, bonus, grand = parse_match_label(share.match, game)
        except UnparseableMatchLabel as e:
            logger.warning("Skipping prize tier: %s", e)
            continue
        text = normalize_amount_text(share.amount)
        try:
            value = parse_prize_value(text, game_cost)
        except UnrecognizedPrizeAmount as e:
            logger.warning("%s: %s; tier %r kept without a value", game.slug, e, share.match)
            value = None
        rules.append(PrizeRule(main, bonus, share.match, value, text, match_grand=grand))
    return rules


def fallback_rules(game_slug: str, game_cost: Optional[float] = None) -> List[PrizeRule]:
    out: List[PrizeRule] = []
    for rule in PRIZE_TABLES.get(game_slug, []):
        if game_cost is not None and FREE_PLAY in rule.prize_text.upper():
            rule = PrizeRule(rule.match_main, rule.match_bonus, rule.category,
                             float(game_cost), rule.prize_text, rule.match_grand)
        out.append(rule)
    return out


def resolve_rules(
    game: GameDefinition,
    prize_shares: Optional[Sequence[Union[PrizeShare, dict]]] = None,
    game_cost: Optional[float] = None,
) -> List[PrizeRule]:
    rules: List[PrizeRule] = []
    if prize_shares:
        rules = build_prize_rules(game, prize_shares, game_cost)
        if not rules:
            logger.info("No parseable prize tiers for %s; using static table", game.slug)
    if not rules:
        rules = fallback_rules(game.slug, game_cost)
    if not rules:
        raise InvalidGameConfig(f"No prize rules for game {game.slug!r}")
    return rules


# ---- Evaluation ----
def evaluate_candidate(
    game: GameDefinition,
    main_numbers: Sequence[int],
    bonus_numbers: Sequence[int],
    official: DrawRecord,
    prize_shares: Optional[Sequence[Union[PrizeShare, dict]]] = None,
    game_cost: Optional[float] = None,
) -> EvaluationResult:
    cost = game.cost if game_cost is None else game_cost
    shares = prize_shares if prize_shares is not None else official.prize_shares
    rules = resolve_rules(game, shares, cost)

    mains = set(int(n) for n in main_numbers)
    drawn_bonus = set(official.bonus)
    match_main = len(mains & set(official.numbers))
    match_bonus = 0
    match_grand = 0
    if game.uses_grand_number:
        if drawn_bonus & set(int(n) for n in bonus_numbers):
            match_grand = 1
    elif drawn_bonus & mains:
        match_bonus = 1

    for rule in rules:
        if rule.match_main != match_main:
            continue
        if game.uses_grand_number:
            ok = rule.match_grand == (match_grand > 0)
        else:
            ok = rule.match_bonus == (match_bonus > 0)
        if ok:
            return EvaluationResult(rule.category, rule.prize_value, rule.prize_text,
                                    match_main, match_bonus, match_grand)

    return EvaluationResult(None, 0, None, match_main, match_bonus, match_grand)
