"""Fantasy Premier League reference data models.

Only the fields the chat tools read are declared; everything else in the
API payloads is ignored.
"""

from datetime import datetime

from pydantic import BaseModel, Field

POSITION_IDS = {"GKP": 1, "DEF": 2, "MID": 3, "FWD": 4}


class FPLModel(BaseModel):
    """Base for FPL payloads."""

    class Config:
        extra = "ignore"


def _to_float(value: str | float | None) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class Team(FPLModel):
    id: int
    name: str
    short_name: str


class ElementType(FPLModel):
    id: int
    singular_name_short: str


class Event(FPLModel):
    """A gameweek."""

    id: int
    name: str
    deadline_time: datetime
    is_current: bool = False
    is_next: bool = False
    finished: bool = False
    average_entry_score: int | None = 0
    highest_score: int | None = 0


class Player(FPLModel):
    """A player ("element") in the bootstrap data. Prices are in tenths of a million."""

    id: int
    web_name: str
    first_name: str = ""
    second_name: str = ""
    team: int
    element_type: int
    now_cost: int
    total_points: int = 0
    form: str = "0.0"
    selected_by_percent: str = "0.0"
    expected_goals: str = "0.00"
    expected_assists: str = "0.00"
    expected_goal_involvements: str = "0.00"
    minutes: int = 0
    goals_scored: int = 0
    assists: int = 0
    clean_sheets: int = 0
    bonus: int = 0
    news: str = ""
    chance_of_playing_next_round: int | None = None
    transfers_in_event: int = 0
    transfers_out_event: int = 0
    cost_change_event: int = 0
    penalties_order: int | None = None
    direct_freekicks_order: int | None = None
    corners_and_indirect_freekicks_order: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.second_name}".strip()

    @property
    def price(self) -> float:
        return self.now_cost / 10

    @property
    def form_value(self) -> float:
        return _to_float(self.form)

    @property
    def ownership(self) -> float:
        return _to_float(self.selected_by_percent)

    @property
    def xg(self) -> float:
        return _to_float(self.expected_goals)

    @property
    def xa(self) -> float:
        return _to_float(self.expected_assists)

    @property
    def xgi(self) -> float:
        return _to_float(self.expected_goal_involvements)

    def matches(self, query: str) -> bool:
        """Case-insensitive partial match on display, first or second name."""
        query = query.lower()
        return (
            query in self.web_name.lower()
            or query in self.first_name.lower()
            or query in self.second_name.lower()
            or query in self.full_name.lower()
        )


class Fixture(FPLModel):
    id: int
    event: int | None = None
    team_h: int
    team_a: int
    team_h_difficulty: int = 3
    team_a_difficulty: int = 3
    kickoff_time: datetime | None = None
    finished: bool = False

    def involves(self, team_id: int) -> bool:
        return team_id in (self.team_h, self.team_a)

    def difficulty_for(self, team_id: int) -> int:
        return self.team_h_difficulty if self.team_h == team_id else self.team_a_difficulty


class BootstrapStatic(FPLModel):
    """The bulk reference snapshot: players, teams, positions and gameweeks."""

    events: list[Event] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    elements: list[Player] = Field(default_factory=list)
    element_types: list[ElementType] = Field(default_factory=list)

    def current_gameweek(self) -> int:
        """Current gameweek, else the next one, else the last finished one, else 1."""
        for event in self.events:
            if event.is_current:
                return event.id
        for event in self.events:
            if event.is_next:
                return event.id
        finished = [event for event in self.events if event.finished]
        return finished[-1].id if finished else 1


class PlayerHistory(FPLModel):
    round: int
    total_points: int = 0
    minutes: int = 0
    goals_scored: int = 0
    assists: int = 0
    bonus: int = 0
    opponent_team: int
    was_home: bool = False


class PlayerFixture(FPLModel):
    event: int | None = None
    team_h: int
    team_a: int
    is_home: bool = False
    difficulty: int = 3


class ElementSummary(FPLModel):
    """Per-player history and upcoming fixtures."""

    history: list[PlayerHistory] = Field(default_factory=list)
    fixtures: list[PlayerFixture] = Field(default_factory=list)


class ManagerEntry(FPLModel):
    id: int
    name: str
    player_first_name: str = ""
    player_last_name: str = ""
    summary_overall_points: int | None = 0
    summary_overall_rank: int | None = None


class Pick(FPLModel):
    element: int
    position: int = 0
    multiplier: int = 1
    is_captain: bool = False
    is_vice_captain: bool = False


class EntryHistory(FPLModel):
    event: int = 0
    points: int = 0
    total_points: int = 0
    bank: int = 0
    value: int = 0
    event_transfers: int = 0


class ManagerPicks(FPLModel):
    active_chip: str | None = None
    entry_history: EntryHistory = Field(default_factory=EntryHistory)
    picks: list[Pick] = Field(default_factory=list)


class League(FPLModel):
    id: int
    name: str


class StandingsResult(FPLModel):
    entry: int
    entry_name: str
    player_name: str = ""
    rank: int
    total: int
    event_total: int = 0


class StandingsPage(FPLModel):
    has_next: bool = False
    page: int = 1
    results: list[StandingsResult] = Field(default_factory=list)


class LeagueStandings(FPLModel):
    league: League
    standings: StandingsPage = Field(default_factory=StandingsPage)
