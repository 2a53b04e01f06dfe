"""Mini-league rival analysis tool."""

import asyncio
from collections import Counter
from typing import Any

from pydantic import BaseModel, Field

from fpl_chat.models.fpl import ManagerPicks, StandingsResult
from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import ToolContext
from fpl_chat.tools.squad import NO_MANAGER_MESSAGE

MAX_RIVALS = 10


class LeagueAnalysisInput(BaseModel):
    """Input schema for mini-league analysis."""

    league_id: int = Field(..., description="The mini-league ID to analyze")
    rival_count: int | None = Field(None, description="Number of closest rivals to analyze (default: 5, max: 10)")


def _closest_rivals(results: list[StandingsResult], manager_id: int, count: int) -> list[StandingsResult]:
    """Rivals nearest in rank to the manager, excluding the manager."""
    me = next((r for r in results if r.entry == manager_id), None)
    others = [r for r in results if r.entry != manager_id]
    if me is None:
        return others[:count]
    return sorted(others, key=lambda r: (abs(r.rank - me.rank), r.rank))[:count]


def _effective_ownership(picks: list[ManagerPicks]) -> Counter:
    """Sum of pick multipliers per player across the given squads, bench excluded."""
    ownership = Counter()
    for squad in picks:
        for pick in squad.picks:
            if pick.multiplier > 0:
                ownership[pick.element] += pick.multiplier
    return ownership


async def get_league_analysis(params: LeagueAnalysisInput, context: ToolContext) -> dict[str, Any]:
    """Compare the connected manager's squad with the closest rivals in a classic league."""
    if not context.manager_id:
        return error_result(NO_MANAGER_MESSAGE)

    rival_count = max(1, min(params.rival_count or 5, MAX_RIVALS))

    try:
        standings = await context.fpl_client.get_league_standings(params.league_id)
        results = standings.standings.results
        rivals = _closest_rivals(results, context.manager_id, rival_count)
        my_picks, *rival_picks = await asyncio.gather(
            context.fpl_client.get_manager_picks(context.manager_id, context.current_gw),
            *(context.fpl_client.get_manager_picks(r.entry, context.current_gw) for r in rivals),
        )
    except Exception as e:
        return error_result(f"Failed to fetch league data: {e}")

    leader = results[0] if results else None
    me = next((r for r in results if r.entry == context.manager_id), None)

    my_ids = {pick.element for pick in my_picks.picks}
    rival_ownership = _effective_ownership(rival_picks)
    rival_squads = len(rival_picks) or 1

    def describe(player_id: int) -> dict[str, Any]:
        player = context.players_by_id.get(player_id)
        summary = context.player_summary(player) if player else {"name": "Unknown"}
        return {**summary, "rivalOwnership": round(rival_ownership[player_id] / rival_squads * 100)}

    my_differentials = [describe(pid) for pid in my_ids if rival_ownership[pid] == 0]
    threats = [
        describe(pid)
        for pid, _ in rival_ownership.most_common()
        if pid not in my_ids
    ][:10]

    return {
        "league": standings.league.name,
        "gameweek": context.current_gw,
        "you": {
            "rank": me.rank if me else None,
            "total": me.total if me else None,
            "gapToLeader": (leader.total - me.total) if leader and me else None,
        },
        "leader": {"name": leader.entry_name, "total": leader.total} if leader else None,
        "rivals": [
            {
                "name": r.entry_name,
                "manager": r.player_name,
                "rank": r.rank,
                "total": r.total,
                "gameweekPoints": r.event_total,
                "gap": (r.total - me.total) if me else None,
                "captain": next(
                    (
                        context.players_by_id[p.element].web_name
                        for p in picks.picks
                        if p.is_captain and p.element in context.players_by_id
                    ),
                    None,
                ),
            }
            for r, picks in zip(rivals, rival_picks, strict=True)
        ],
        "effectiveOwnership": [
            describe(pid) for pid, _ in rival_ownership.most_common(10)
        ],
        "yourDifferentials": my_differentials,
        "rivalThreats": threats,
    }


def create_league_analysis_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_league_analysis",
        description=(
            "Analyze a mini-league including rival picks, effective ownership, gaps to leader, and "
            "differentials. Requires manager ID to be connected."
        ),
        input_schema_class=LeagueAnalysisInput,
        handler=get_league_analysis,
    )
