"""Connected manager's squad tool."""

import asyncio
from typing import Any

from pydantic import BaseModel, Field

from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import UNKNOWN, ToolContext, format_price

NO_MANAGER_MESSAGE = "No manager ID connected. Please connect your FPL team first."


class MySquadInput(BaseModel):
    """Input schema for the squad lookup."""

    gameweek: int | None = Field(
        None, description="Specific gameweek to get picks for. Defaults to current gameweek."
    )


async def get_my_squad(params: MySquadInput, context: ToolContext) -> dict[str, Any]:
    """Return the manager summary, bank, value and the 15 picks for a gameweek."""
    if not context.manager_id:
        return error_result(NO_MANAGER_MESSAGE)

    gw = params.gameweek or context.current_gw

    try:
        entry, picks = await asyncio.gather(
            context.fpl_client.get_manager(context.manager_id),
            context.fpl_client.get_manager_picks(context.manager_id, gw),
        )
    except Exception as e:
        return error_result(f"Failed to fetch squad: {e}")

    squad = []
    for pick in picks.picks:
        player = context.players_by_id.get(pick.element)
        squad.append(
            {
                "name": player.web_name if player else "Unknown",
                "team": context.team_short_name(player.team) if player else UNKNOWN,
                "position": context.position_name(player.element_type) if player else UNKNOWN,
                "price": format_price(player.now_cost) if player else UNKNOWN,
                "points": player.total_points if player else 0,
                "form": player.form if player else "0.0",
                "isCaptain": pick.is_captain,
                "isViceCaptain": pick.is_vice_captain,
                "isOnBench": pick.multiplier == 0,
            }
        )

    return {
        "manager": {
            "name": f"{entry.player_first_name} {entry.player_last_name}",
            "teamName": entry.name,
            "overallPoints": entry.summary_overall_points,
            "overallRank": entry.summary_overall_rank,
        },
        "gameweek": gw,
        "activeChip": picks.active_chip,
        "teamValue": format_price(picks.entry_history.value),
        "bank": format_price(picks.entry_history.bank),
        "freeTransfers": picks.entry_history.event_transfers,
        "squad": squad,
    }


def create_my_squad_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_my_squad",
        description=(
            "Get the user's current FPL squad including all 15 players, captain/vice-captain, and bench. "
            "Requires a manager ID to be connected."
        ),
        input_schema_class=MySquadInput,
        handler=get_my_squad,
    )
