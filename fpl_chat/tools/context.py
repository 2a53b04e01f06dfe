"""Read-only data context handed to every tool handler."""

import asyncio
from dataclasses import dataclass, field
from functools import cached_property

from fpl_chat.clients.fpl import FPLClient
from fpl_chat.models.fpl import BootstrapStatic, Fixture, Player, Team
from fpl_chat.services.scoring import HeuristicScoringEngine, ScoringEngine

UNKNOWN = "???"


@dataclass
class ToolContext:
    """Snapshot of reference data plus the optional connected manager.

    Handlers must not modify the snapshot; the lookup tables are derived once.
    """

    bootstrap: BootstrapStatic
    fixtures: list[Fixture]
    current_gw: int
    fpl_client: FPLClient
    manager_id: int | None = None
    scoring: ScoringEngine = field(default_factory=HeuristicScoringEngine)

    @cached_property
    def teams_by_id(self) -> dict[int, Team]:
        return {team.id: team for team in self.bootstrap.teams}

    @cached_property
    def team_ids_by_name(self) -> dict[str, int]:
        lookup = {team.name.lower(): team.id for team in self.bootstrap.teams}
        lookup.update({team.short_name.lower(): team.id for team in self.bootstrap.teams})
        return lookup

    @cached_property
    def positions_by_id(self) -> dict[int, str]:
        return {et.id: et.singular_name_short for et in self.bootstrap.element_types}

    @cached_property
    def players_by_id(self) -> dict[int, Player]:
        return {player.id: player for player in self.bootstrap.elements}

    def team_short_name(self, team_id: int) -> str:
        team = self.teams_by_id.get(team_id)
        return team.short_name if team else UNKNOWN

    def team_name(self, team_id: int) -> str:
        team = self.teams_by_id.get(team_id)
        return team.name if team else UNKNOWN

    def position_name(self, element_type: int) -> str:
        return self.positions_by_id.get(element_type, UNKNOWN)

    def find_team_id(self, name: str) -> int | None:
        return self.team_ids_by_name.get(name.lower())

    def find_player(self, name: str) -> Player | None:
        """Exact display-name match first, then the first partial match."""
        query = name.lower().strip()
        players = self.bootstrap.elements
        return next((p for p in players if p.web_name.lower() == query), None) or next(
            (p for p in players if p.matches(query)), None
        )

    def player_summary(self, player: Player) -> dict:
        """Compact description used in several tool results."""
        return {
            "name": player.web_name,
            "team": self.team_short_name(player.team),
            "position": self.position_name(player.element_type),
            "price": format_price(player.now_cost),
        }


def format_price(now_cost: int) -> str:
    """Render a price in tenths of a million as ``£X.Ym``."""
    return f"£{now_cost / 10:.1f}m"


async def create_tool_context(
    fpl_client: FPLClient,
    manager_id: int | None = None,
    scoring: ScoringEngine | None = None,
) -> ToolContext:
    """Fetch bootstrap and fixtures concurrently and derive the current gameweek."""
    bootstrap, fixtures = await asyncio.gather(fpl_client.get_bootstrap_static(), fpl_client.get_fixtures())
    return ToolContext(
        bootstrap=bootstrap,
        fixtures=fixtures,
        current_gw=bootstrap.current_gameweek(),
        fpl_client=fpl_client,
        manager_id=manager_id,
        scoring=scoring or HeuristicScoringEngine(),
    )
