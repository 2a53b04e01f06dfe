"""Player search, detail, comparison and tracking tools."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from fpl_chat.models.fpl import POSITION_IDS, Player
from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import ToolContext, format_price

Position = Literal["GKP", "DEF", "MID", "FWD"]

SORT_KEYS = {
    "total_points": lambda p: p.total_points,
    "form": lambda p: p.form_value,
    "price": lambda p: p.now_cost,
    "ownership": lambda p: p.ownership,
    "xgi": lambda p: p.xgi,
}


def _player_row(player: Player, context: ToolContext) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.web_name,
        "fullName": player.full_name,
        "team": context.team_short_name(player.team),
        "position": context.position_name(player.element_type),
        "price": format_price(player.now_cost),
        "totalPoints": player.total_points,
        "form": player.form,
        "ownership": f"{player.selected_by_percent}%",
        "xGI": player.expected_goal_involvements,
        "minutes": player.minutes,
        "goals": player.goals_scored,
        "assists": player.assists,
        "cleanSheets": player.clean_sheets,
        "bonus": player.bonus,
        "news": player.news or None,
        "chanceOfPlaying": player.chance_of_playing_next_round,
    }


def _points_per_game(player: Player) -> str:
    return f"{player.total_points / (player.minutes / 90):.1f}" if player.minutes > 0 else "0.0"


def _points_per_million(player: Player) -> str:
    return f"{player.total_points / player.price:.1f}" if player.now_cost else "0.0"


class SearchPlayersInput(BaseModel):
    """Input schema for player search."""

    query: str | None = Field(None, description="Player name to search for (partial match supported)")
    team: str | None = Field(None, description="Filter by team name (e.g., 'Arsenal', 'Liverpool')")
    position: Position | None = Field(None, description="Filter by position")
    min_price: float | None = Field(None, description="Minimum price in millions (e.g., 5.0)")
    max_price: float | None = Field(None, description="Maximum price in millions (e.g., 10.0)")
    sort_by: Literal["total_points", "form", "price", "ownership", "xgi"] | None = Field(
        None, description="Sort results by this metric (default: total_points)"
    )
    limit: int | None = Field(None, description="Maximum number of results (default: 10)")


async def search_players(params: SearchPlayersInput, context: ToolContext) -> list[dict[str, Any]]:
    players = list(context.bootstrap.elements)

    if params.query:
        players = [p for p in players if p.matches(params.query)]

    if params.team:
        team_id = context.find_team_id(params.team)
        if team_id:
            players = [p for p in players if p.team == team_id]

    if params.position:
        players = [p for p in players if p.element_type == POSITION_IDS[params.position]]

    if params.min_price:
        players = [p for p in players if p.now_cost >= params.min_price * 10]

    if params.max_price:
        players = [p for p in players if p.now_cost <= params.max_price * 10]

    players.sort(key=SORT_KEYS[params.sort_by or "total_points"], reverse=True)

    return [_player_row(p, context) for p in players[: params.limit or 10]]


def create_search_players_tool() -> ToolDefinition:
    return ToolDefinition(
        name="search_players",
        description=(
            "Search for FPL players by name, team, or position. Returns player stats, price, form, and "
            "ownership data. Use this to find players matching specific criteria."
        ),
        input_schema_class=SearchPlayersInput,
        handler=search_players,
    )


class PlayerDetailsInput(BaseModel):
    """Input schema for player details."""

    player_id: int | None = Field(None, description="The FPL player ID")
    player_name: str | None = Field(None, description="Player name to look up (if ID not known)")


async def get_player_details(params: PlayerDetailsInput, context: ToolContext) -> dict[str, Any]:
    player = None
    if params.player_id:
        player = context.players_by_id.get(params.player_id)
    elif params.player_name:
        player = context.find_player(params.player_name)

    if player is None:
        return error_result("Player not found")

    try:
        summary = await context.fpl_client.get_player_summary(player.id)
    except Exception as e:
        return error_result(f"Failed to fetch player details: {e}")

    return {
        "id": player.id,
        "name": player.web_name,
        "fullName": player.full_name,
        "team": context.team_name(player.team),
        "position": context.position_name(player.element_type),
        "price": format_price(player.now_cost),
        "totalPoints": player.total_points,
        "form": player.form,
        "ownership": f"{player.selected_by_percent}%",
        "stats": {
            "minutes": player.minutes,
            "goals": player.goals_scored,
            "assists": player.assists,
            "cleanSheets": player.clean_sheets,
            "bonus": player.bonus,
            "xG": player.expected_goals,
            "xA": player.expected_assists,
            "xGI": player.expected_goal_involvements,
        },
        "news": player.news or None,
        "chanceOfPlaying": player.chance_of_playing_next_round,
        "recentHistory": [
            {
                "gameweek": h.round,
                "points": h.total_points,
                "minutes": h.minutes,
                "goals": h.goals_scored,
                "assists": h.assists,
                "bonus": h.bonus,
                "opponent": context.team_short_name(h.opponent_team),
                "home": h.was_home,
            }
            for h in summary.history[-5:]
        ],
        "upcomingFixtures": [
            {
                "gameweek": f.event,
                "opponent": context.team_short_name(f.team_a if f.is_home else f.team_h),
                "home": f.is_home,
                "difficulty": f.difficulty,
            }
            for f in summary.fixtures[:5]
        ],
    }


def create_player_details_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_player_details",
        description=(
            "Get detailed information about a specific player including season history, upcoming "
            "fixtures, and past gameweek performance."
        ),
        input_schema_class=PlayerDetailsInput,
        handler=get_player_details,
    )


class ComparePlayersInput(BaseModel):
    """Input schema for player comparison."""

    player_names: list[str] = Field(..., description="Array of player names to compare")


async def compare_players(params: ComparePlayersInput, context: ToolContext) -> Any:
    if len(params.player_names) < 2:
        return error_result("Please provide at least 2 players to compare")

    players = [p for p in (context.find_player(name) for name in params.player_names) if p is not None]
    if len(players) < 2:
        return error_result("Could not find enough players to compare")

    return [
        {
            "id": p.id,
            "name": p.web_name,
            "team": context.team_short_name(p.team),
            "position": context.position_name(p.element_type),
            "price": format_price(p.now_cost),
            "totalPoints": p.total_points,
            "form": p.form_value,
            "ownership": f"{p.selected_by_percent}%",
            "minutes": p.minutes,
            "goals": p.goals_scored,
            "assists": p.assists,
            "cleanSheets": p.clean_sheets,
            "bonus": p.bonus,
            "xG": p.xg,
            "xA": p.xa,
            "xGI": p.xgi,
            "pointsPerGame": _points_per_game(p),
            "pointsPerMillion": _points_per_million(p),
        }
        for p in players
    ]


def create_compare_players_tool() -> ToolDefinition:
    return ToolDefinition(
        name="compare_players",
        description=(
            "Compare two or more players side by side on key FPL metrics including points, form, value, "
            "xGI, and fixtures."
        ),
        input_schema_class=ComparePlayersInput,
        handler=compare_players,
    )


class DifferentialsInput(BaseModel):
    """Input schema for differential search."""

    max_ownership: float | None = Field(None, description="Maximum ownership percentage (default: 10)")
    position: Position | None = Field(None, description="Filter by position")
    min_form: float | None = Field(None, description="Minimum form rating (default: 4.0)")
    max_price: float | None = Field(None, description="Maximum price in millions")
    limit: int | None = Field(None, description="Maximum number of results (default: 10)")


async def get_differentials(params: DifferentialsInput, context: ToolContext) -> list[dict[str, Any]]:
    max_ownership = params.max_ownership if params.max_ownership is not None else 10
    min_form = params.min_form if params.min_form is not None else 4.0

    candidates = [
        p
        for p in context.bootstrap.elements
        if p.minutes > 0 and p.ownership <= max_ownership and p.form_value >= min_form
    ]
    if params.position:
        candidates = [p for p in candidates if p.element_type == POSITION_IDS[params.position]]
    if params.max_price:
        candidates = [p for p in candidates if p.now_cost <= params.max_price * 10]

    ranked = {t.player.id: t for t in context.scoring.score_transfer_targets(candidates, context.fixtures, context.current_gw)}
    candidates.sort(key=lambda p: ranked[p.id].score if p.id in ranked else 0, reverse=True)

    return [
        {
            **context.player_summary(p),
            "ownership": f"{p.selected_by_percent}%",
            "form": p.form_value,
            "totalPoints": p.total_points,
            "xGI": p.xgi,
            "upcomingDifficulty": round(ranked[p.id].upcoming_difficulty, 1) if p.id in ranked else None,
        }
        for p in candidates[: params.limit or 10]
    ]


def create_differentials_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_differentials",
        description=(
            "Find low-ownership players with high upside potential. Returns players with ownership below "
            "a threshold who have good form and fixtures."
        ),
        input_schema_class=DifferentialsInput,
        handler=get_differentials,
    )


class WatchlistInput(BaseModel):
    """Input schema for the watchlist."""

    player_names: list[str] = Field(..., description="Array of player names to track")
    include_price_prediction: bool | None = Field(
        None, description="Include price change predictions (default: true)"
    )


async def get_watchlist(params: WatchlistInput, context: ToolContext) -> Any:
    if not params.player_names:
        return error_result("Please provide at least 1 player to track")

    found: list[Player] = []
    missing: list[str] = []
    for name in params.player_names:
        player = context.find_player(name)
        if player is None:
            missing.append(name)
        else:
            found.append(player)

    if not found:
        return error_result("None of the requested players were found")

    predictions = {}
    if params.include_price_prediction is not False:
        prediction = context.scoring.predict_price_changes(found)
        predictions = {c.player.id: c for c in prediction.risers + prediction.fallers}

    players = []
    for p in found:
        row = {
            **context.player_summary(p),
            "totalPoints": p.total_points,
            "form": p.form_value,
            "ownership": f"{p.selected_by_percent}%",
            "xGI": p.xgi,
            "news": p.news or None,
            "chanceOfPlaying": p.chance_of_playing_next_round,
        }
        if params.include_price_prediction is not False:
            candidate = predictions.get(p.id)
            row["priceChange"] = (
                {"direction": candidate.direction, "probability": round(candidate.probability * 100)}
                if candidate
                else None
            )
        players.append(row)

    return {"players": players, "notFound": missing}


def create_watchlist_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_watchlist",
        description=(
            "Get detailed stats for a list of specific players the user is tracking. Useful for monitoring "
            "potential transfers or keeping an eye on form changes."
        ),
        input_schema_class=WatchlistInput,
        handler=get_watchlist,
    )
