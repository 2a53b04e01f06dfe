"""Fixture and gameweek tools."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import ToolContext


class FixturesInput(BaseModel):
    """Input schema for upcoming fixtures."""

    team: str | None = Field(
        None, description="Team name to get fixtures for (e.g., 'Arsenal'). If omitted, returns all fixtures."
    )
    gameweeks: int | None = Field(None, description="Number of upcoming gameweeks to include (default: 5)")


async def get_fixtures(params: FixturesInput, context: ToolContext) -> Any:
    """Unfinished fixtures in the window, flat for all teams or from one team's perspective."""
    gameweeks = params.gameweeks or 5
    team_id = context.find_team_id(params.team) if params.team else None
    start = context.current_gw

    upcoming = [
        f
        for f in context.fixtures
        if not f.finished
        and f.event is not None
        and start <= f.event < start + gameweeks
        and (team_id is None or f.involves(team_id))
    ]

    if team_id is None:
        return [
            {
                "gameweek": f.event,
                "homeTeam": context.team_short_name(f.team_h),
                "awayTeam": context.team_short_name(f.team_a),
                "kickoff": f.kickoff_time.isoformat() if f.kickoff_time else None,
                "homeDifficulty": f.team_h_difficulty,
                "awayDifficulty": f.team_a_difficulty,
            }
            for f in upcoming
        ]

    return {
        "team": context.team_name(team_id),
        "fixtures": [
            {
                "gameweek": f.event,
                "opponent": context.team_short_name(f.team_a if f.team_h == team_id else f.team_h),
                "isHome": f.team_h == team_id,
                "difficulty": f.difficulty_for(team_id),
                "kickoff": f.kickoff_time.isoformat() if f.kickoff_time else None,
            }
            for f in upcoming
        ],
    }


def create_fixtures_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_fixtures",
        description=(
            "Get upcoming fixtures for teams with fixture difficulty ratings. Useful for planning transfers "
            "and captain picks."
        ),
        input_schema_class=FixturesInput,
        handler=get_fixtures,
    )


class GameweekInfoInput(BaseModel):
    """Input schema for gameweek information."""

    gameweek: int | None = Field(None, description="Specific gameweek number (default: current gameweek)")


async def get_gameweek_info(params: GameweekInfoInput, context: ToolContext) -> dict[str, Any]:
    events = context.bootstrap.events
    if params.gameweek:
        event = next((e for e in events if e.id == params.gameweek), None)
    else:
        event = next((e for e in events if e.is_current), None) or next((e for e in events if e.is_next), None)

    if event is None:
        return error_result("Gameweek not found")

    deadline = event.deadline_time
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=UTC)
    hours_until_deadline = max(0.0, (deadline - datetime.now(UTC)).total_seconds() / 3600)

    return {
        "id": event.id,
        "name": event.name,
        "deadline": deadline.isoformat(),
        "deadlineFormatted": deadline.strftime("%a %d %b, %H:%M"),
        "hoursUntilDeadline": round(hours_until_deadline, 1),
        "isCurrent": event.is_current,
        "isNext": event.is_next,
        "finished": event.finished,
        "averageScore": event.average_entry_score or 0,
        "highestScore": event.highest_score or 0,
    }


def create_gameweek_info_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_gameweek_info",
        description=(
            "Get information about current or specific gameweek including deadline, status, and average scores."
        ),
        input_schema_class=GameweekInfoInput,
        handler=get_gameweek_info,
    )
