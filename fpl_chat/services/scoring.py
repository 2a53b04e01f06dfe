"""Scoring engine interface and default heuristic implementation.

Captain, transfer, price-change and chip-timing analytics are pure functions
over the reference data. Tools depend only on the ``ScoringEngine`` protocol;
``HeuristicScoringEngine`` is the weighted-sum model used in production.
"""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal, Protocol

from fpl_chat.models.fpl import Event, Fixture, Player

CAPTAIN_WEIGHTS = {"form": 0.35, "fixture": 0.25, "xgi": 0.2, "home": 0.1, "set_pieces": 0.1}
TRANSFER_WEIGHTS = {"form": 0.3, "fixture": 0.25, "value": 0.25, "xgi": 0.2}

MIN_CAPTAIN_MINUTES = 90
SAFE_OWNERSHIP_THRESHOLD = 15
NEUTRAL_DIFFICULTY = 3.0
MAX_SET_PIECE_SCORE = 8
MAX_PRICE_PROBABILITY = 0.95

CHIP_LABELS = {
    "wildcard": "Wildcard",
    "freehit": "Free Hit",
    "bboost": "Bench Boost",
    "3xc": "Triple Captain",
}


@dataclass
class CaptainPick:
    player: Player
    score: float
    form_score: float
    fixture_score: float
    xgi_score: float
    set_piece_score: float
    is_home: bool
    opponent_id: int
    difficulty: int
    category: Literal["safe", "differential"]


@dataclass
class TransferTarget:
    player: Player
    score: float
    form_score: float
    fixture_score: float
    value_score: float
    xgi_score: float
    upcoming_difficulty: float


@dataclass
class PriceChangeCandidate:
    player: Player
    direction: Literal["rise", "fall"]
    probability: float
    net_transfers: int
    cost_change_momentum: int


@dataclass
class PricePrediction:
    risers: list[PriceChangeCandidate] = field(default_factory=list)
    fallers: list[PriceChangeCandidate] = field(default_factory=list)


@dataclass
class GameweekChipScore:
    gw: int
    score: int
    reasoning: str


@dataclass
class ChipAnalysis:
    chip: str
    label: str
    current_gw_score: int
    best_gw: int
    best_gw_score: int
    recommendation: Literal["use_now", "consider", "save"]
    summary: str
    gw_scores: list[GameweekChipScore]


class ScoringEngine(Protocol):
    """Interface for the analytics consumed by the chat tools."""

    def score_captain_options(self, players: Sequence[Player], fixtures: Sequence[Fixture], gw: int) -> list[CaptainPick]:
        """Rank captain candidates for a gameweek, best first."""
        ...

    def score_transfer_targets(
        self, players: Sequence[Player], fixtures: Sequence[Fixture], next_gw: int, look_ahead: int = 5
    ) -> list[TransferTarget]:
        """Rank transfer-in targets, best first."""
        ...

    def predict_price_changes(self, players: Sequence[Player]) -> PricePrediction:
        """Players most likely to rise or fall in price."""
        ...

    def analyze_chip_timing(
        self,
        players: Sequence[Player],
        fixtures: Sequence[Fixture],
        events: Sequence[Event],
        current_gw: int,
        chips: Sequence[str],
    ) -> list[ChipAnalysis]:
        """Score each chip for the upcoming gameweeks."""
        ...


def upcoming_difficulty(team_id: int, fixtures: Sequence[Fixture], from_gw: int, look_ahead: int) -> float:
    """Average difficulty of a team's fixtures in ``[from_gw, from_gw + look_ahead)``."""
    relevant = [
        f
        for f in fixtures
        if f.event is not None and from_gw <= f.event < from_gw + look_ahead and f.involves(team_id)
    ]
    if not relevant:
        return NEUTRAL_DIFFICULTY
    return sum(f.difficulty_for(team_id) for f in relevant) / len(relevant)


def _set_piece_points(player: Player) -> int:
    points = 0
    if player.penalties_order is not None and player.penalties_order <= 1:
        points += 5
    elif player.penalties_order is not None and player.penalties_order <= 2:
        points += 2
    if player.direct_freekicks_order is not None and player.direct_freekicks_order <= 1:
        points += 2
    if player.corners_and_indirect_freekicks_order is not None and player.corners_and_indirect_freekicks_order <= 1:
        points += 1
    return points


class HeuristicScoringEngine:
    """Weighted-sum scoring over form, fixtures, value and expected goal involvement."""

    def score_captain_options(self, players: Sequence[Player], fixtures: Sequence[Fixture], gw: int) -> list[CaptainPick]:
        max_form = max([p.form_value for p in players] + [1.0])
        max_xgi = max([p.xgi for p in players] + [0.1])

        picks = []
        for player in players:
            if player.minutes <= MIN_CAPTAIN_MINUTES:
                continue
            fixture = next((f for f in fixtures if f.event == gw and f.involves(player.team)), None)
            if fixture is None:
                continue

            is_home = fixture.team_h == player.team
            difficulty = fixture.difficulty_for(player.team)
            form_score = player.form_value / max_form * 10
            fixture_score = (5 - difficulty) / 4 * 10
            xgi_score = player.xgi / max_xgi * 10
            set_piece_score = _set_piece_points(player) / MAX_SET_PIECE_SCORE * 10
            score = (
                form_score * CAPTAIN_WEIGHTS["form"]
                + fixture_score * CAPTAIN_WEIGHTS["fixture"]
                + xgi_score * CAPTAIN_WEIGHTS["xgi"]
                + (10 if is_home else 0) * CAPTAIN_WEIGHTS["home"]
                + set_piece_score * CAPTAIN_WEIGHTS["set_pieces"]
            )
            picks.append(
                CaptainPick(
                    player=player,
                    score=score,
                    form_score=form_score,
                    fixture_score=fixture_score,
                    xgi_score=xgi_score,
                    set_piece_score=set_piece_score,
                    is_home=is_home,
                    opponent_id=fixture.team_a if is_home else fixture.team_h,
                    difficulty=difficulty,
                    category="safe" if player.ownership >= SAFE_OWNERSHIP_THRESHOLD else "differential",
                )
            )

        return sorted(picks, key=lambda pick: pick.score, reverse=True)

    def score_transfer_targets(
        self, players: Sequence[Player], fixtures: Sequence[Fixture], next_gw: int, look_ahead: int = 5
    ) -> list[TransferTarget]:
        max_form = max([p.form_value for p in players] + [1.0])
        max_value = max([p.total_points / p.price for p in players if p.now_cost] + [1.0])
        max_xgi = max([p.xgi for p in players] + [0.1])

        targets = []
        for player in players:
            if player.minutes <= 0:
                continue
            difficulty = upcoming_difficulty(player.team, fixtures, next_gw, look_ahead)
            value = player.total_points / player.price if player.now_cost else 0.0
            form_score = player.form_value / max_form * 10
            fixture_score = (5 - difficulty) / 4 * 10
            value_score = value / max_value * 10
            xgi_score = player.xgi / max_xgi * 10
            targets.append(
                TransferTarget(
                    player=player,
                    score=form_score * TRANSFER_WEIGHTS["form"]
                    + fixture_score * TRANSFER_WEIGHTS["fixture"]
                    + value_score * TRANSFER_WEIGHTS["value"]
                    + xgi_score * TRANSFER_WEIGHTS["xgi"],
                    form_score=form_score,
                    fixture_score=fixture_score,
                    value_score=value_score,
                    xgi_score=xgi_score,
                    upcoming_difficulty=difficulty,
                )
            )

        return sorted(targets, key=lambda target: target.score, reverse=True)

    def predict_price_changes(self, players: Sequence[Player]) -> PricePrediction:
        candidates = []
        for player in players:
            if player.ownership < 0.1:
                continue
            net = player.transfers_in_event - player.transfers_out_event
            if player.transfers_in_event + player.transfers_out_event == 0 or net == 0:
                continue

            # Net transfers relative to an estimated owner count.
            ratio = net / max(player.ownership * 100_000, 1)
            probability = min(abs(ratio) * 50, MAX_PRICE_PROBABILITY)
            momentum = player.cost_change_event
            if momentum and (momentum > 0) == (net > 0):
                probability = min(probability * 1.3, MAX_PRICE_PROBABILITY)
            if probability < 0.05:
                continue

            candidates.append(
                PriceChangeCandidate(
                    player=player,
                    direction="rise" if net > 0 else "fall",
                    probability=round(probability, 2),
                    net_transfers=net,
                    cost_change_momentum=momentum,
                )
            )

        by_probability = sorted(candidates, key=lambda c: c.probability, reverse=True)
        return PricePrediction(
            risers=[c for c in by_probability if c.direction == "rise"][:20],
            fallers=[c for c in by_probability if c.direction == "fall"][:20],
        )

    def analyze_chip_timing(
        self,
        players: Sequence[Player],
        fixtures: Sequence[Fixture],
        events: Sequence[Event],
        current_gw: int,
        chips: Sequence[str],
    ) -> list[ChipAnalysis]:
        last_gw = max([e.id for e in events] + [current_gw])
        window = [gw for gw in range(current_gw, current_gw + 6) if gw <= last_gw]
        team_ids = {f.team_h for f in fixtures} | {f.team_a for f in fixtures}

        analyses = []
        for chip in chips:
            if chip not in CHIP_LABELS:
                continue
            gw_scores = [self._score_chip_gameweek(chip, gw, players, fixtures, team_ids) for gw in window]
            if not gw_scores:
                continue
            best = max(gw_scores, key=lambda s: s.score)
            current = gw_scores[0]
            if current.score >= best.score and current.score >= 70:
                recommendation = "use_now"
            elif current.score >= 60:
                recommendation = "consider"
            else:
                recommendation = "save"
            analyses.append(
                ChipAnalysis(
                    chip=chip,
                    label=CHIP_LABELS[chip],
                    current_gw_score=current.score,
                    best_gw=best.gw,
                    best_gw_score=best.score,
                    recommendation=recommendation,
                    summary=f"{CHIP_LABELS[chip]}: best in GW{best.gw} ({best.reasoning})",
                    gw_scores=gw_scores,
                )
            )

        return sorted(analyses, key=lambda a: a.best_gw_score, reverse=True)

    def _score_chip_gameweek(
        self,
        chip: str,
        gw: int,
        players: Sequence[Player],
        fixtures: Sequence[Fixture],
        team_ids: set[int],
    ) -> GameweekChipScore:
        gw_fixtures = [f for f in fixtures if f.event == gw]
        counts = Counter()
        for f in gw_fixtures:
            counts[f.team_h] += 1
            counts[f.team_a] += 1
        doubles = sum(1 for n in counts.values() if n >= 2)
        blanks = sum(1 for team_id in team_ids if counts[team_id] == 0)

        if chip == "bboost":
            score = 40 + doubles * 6 - blanks * 4
            reasoning = f"{doubles} teams double, {blanks} blank"
        elif chip == "freehit":
            score = 25 + blanks * 7 + doubles * 3
            reasoning = f"{blanks} teams blank, {doubles} double"
        elif chip == "3xc":
            picks = self.score_captain_options(players, gw_fixtures, gw)
            top = picks[0] if picks else None
            score = round(top.score * 7) if top else 0
            if top and counts[top.player.team] >= 2:
                score += 25
            reasoning = f"top captain {top.player.web_name} ({top.score:.1f})" if top else "no captain fixture"
        else:
            ease = sum(5 - f.team_h_difficulty + 5 - f.team_a_difficulty for f in gw_fixtures)
            score = 30 + round(ease / max(len(gw_fixtures), 1) * 5)
            reasoning = f"{len(gw_fixtures)} fixtures"

        return GameweekChipScore(gw=gw, score=max(0, min(100, score)), reasoning=reasoning)
