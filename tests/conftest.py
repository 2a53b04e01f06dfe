"""Shared builders for FPL reference data, tool contexts and fake transports."""

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from fpl_chat.clients.fpl import FPLClient, FPLClientConfig
from fpl_chat.models.chat import StreamEvent
from fpl_chat.models.fpl import BootstrapStatic, Fixture
from fpl_chat.streaming.encoder import encode_event
from fpl_chat.tools.context import ToolContext

TEAMS = [
    {"id": 1, "name": "Arsenal", "short_name": "ARS"},
    {"id": 2, "name": "Liverpool", "short_name": "LIV"},
    {"id": 3, "name": "Chelsea", "short_name": "CHE"},
    {"id": 4, "name": "Everton", "short_name": "EVE"},
]

ELEMENT_TYPES = [
    {"id": 1, "singular_name_short": "GKP"},
    {"id": 2, "singular_name_short": "DEF"},
    {"id": 3, "singular_name_short": "MID"},
    {"id": 4, "singular_name_short": "FWD"},
]


def make_player(player_id: int, web_name: str, team: int, element_type: int, now_cost: int, **overrides) -> dict:
    """A bootstrap ``element`` payload with sensible defaults."""
    player = {
        "id": player_id,
        "web_name": web_name,
        "first_name": web_name,
        "second_name": "Player",
        "team": team,
        "element_type": element_type,
        "now_cost": now_cost,
        "total_points": 50,
        "form": "4.0",
        "selected_by_percent": "10.0",
        "expected_goals": "1.00",
        "expected_assists": "1.00",
        "expected_goal_involvements": "2.00",
        "minutes": 900,
        "goals_scored": 2,
        "assists": 2,
        "clean_sheets": 1,
        "bonus": 3,
        "news": "",
        "chance_of_playing_next_round": None,
        "transfers_in_event": 0,
        "transfers_out_event": 0,
        "cost_change_event": 0,
    }
    player.update(overrides)
    return player


PLAYERS = [
    make_player(
        1,
        "Saka",
        1,
        3,
        100,
        first_name="Bukayo",
        second_name="Saka",
        total_points=120,
        form="8.5",
        selected_by_percent="45.2",
        expected_goal_involvements="9.50",
        penalties_order=1,
        transfers_in_event=150000,
        transfers_out_event=5000,
    ),
    make_player(
        2,
        "Salah",
        2,
        3,
        130,
        first_name="Mohamed",
        second_name="Salah",
        total_points=150,
        form="9.0",
        selected_by_percent="60.1",
        expected_goal_involvements="12.00",
    ),
    make_player(
        3,
        "Palmer",
        3,
        3,
        105,
        first_name="Cole",
        second_name="Palmer",
        total_points=110,
        form="7.0",
        selected_by_percent="5.5",
        expected_goal_involvements="8.00",
    ),
    make_player(
        4,
        "Pickford",
        4,
        1,
        50,
        first_name="Jordan",
        second_name="Pickford",
        total_points=60,
        form="3.0",
        selected_by_percent="12.0",
        expected_goal_involvements="0.00",
        transfers_in_event=1000,
        transfers_out_event=90000,
    ),
    make_player(
        5,
        "Benched",
        4,
        4,
        45,
        total_points=0,
        form="0.0",
        selected_by_percent="0.5",
        minutes=0,
        expected_goal_involvements="0.00",
    ),
]

NOW = datetime.now(UTC)

EVENTS = [
    {
        "id": 1,
        "name": "Gameweek 1",
        "deadline_time": (NOW - timedelta(days=7)).isoformat(),
        "is_current": False,
        "is_next": False,
        "finished": True,
        "average_entry_score": 55,
        "highest_score": 120,
    },
    {
        "id": 2,
        "name": "Gameweek 2",
        "deadline_time": (NOW + timedelta(days=2)).isoformat(),
        "is_current": True,
        "is_next": False,
        "finished": False,
        "average_entry_score": 0,
        "highest_score": None,
    },
    {
        "id": 3,
        "name": "Gameweek 3",
        "deadline_time": (NOW + timedelta(days=9)).isoformat(),
        "is_current": False,
        "is_next": True,
        "finished": False,
    },
]

FIXTURES = [
    {"id": 10, "event": 1, "team_h": 1, "team_a": 2, "team_h_difficulty": 4, "team_a_difficulty": 4, "finished": True},
    {"id": 11, "event": 2, "team_h": 1, "team_a": 4, "team_h_difficulty": 2, "team_a_difficulty": 4},
    {"id": 12, "event": 2, "team_h": 3, "team_a": 2, "team_h_difficulty": 4, "team_a_difficulty": 3},
    {"id": 13, "event": 3, "team_h": 2, "team_a": 1, "team_h_difficulty": 4, "team_a_difficulty": 5},
    {"id": 14, "event": 3, "team_h": 4, "team_a": 3, "team_h_difficulty": 3, "team_a_difficulty": 2},
    {"id": 15, "event": None, "team_h": 4, "team_a": 1, "team_h_difficulty": 3, "team_a_difficulty": 2},
]


def bootstrap_payload() -> dict:
    return {"events": EVENTS, "teams": TEAMS, "elements": PLAYERS, "element_types": ELEMENT_TYPES}


def picks_payload(elements: list[int], captain: int | None = None) -> dict:
    return {
        "active_chip": None,
        "entry_history": {"event": 2, "points": 60, "total_points": 500, "bank": 15, "value": 1005, "event_transfers": 1},
        "picks": [
            {
                "element": element,
                "position": i + 1,
                "multiplier": (2 if element == captain else 1) if i < 11 else 0,
                "is_captain": element == captain,
                "is_vice_captain": False,
            }
            for i, element in enumerate(elements)
        ],
    }


def fpl_api_handler(request: httpx.Request) -> httpx.Response:
    """Serves the FPL endpoints the tools use from the fixtures above."""
    path = request.url.path
    if path.endswith("/bootstrap-static/"):
        return httpx.Response(200, json=bootstrap_payload())
    if path.endswith("/fixtures/"):
        return httpx.Response(200, json=FIXTURES)
    if "/element-summary/" in path:
        return httpx.Response(
            200,
            json={
                "history": [
                    {"round": 1, "total_points": 12, "minutes": 90, "goals_scored": 1, "assists": 1, "bonus": 3, "opponent_team": 2, "was_home": True}
                ],
                "fixtures": [{"event": 2, "team_h": 1, "team_a": 4, "is_home": True, "difficulty": 2}],
            },
        )
    if path.endswith("/picks/"):
        manager_id = int(path.split("/entry/")[1].split("/")[0])
        squads = {
            42: picks_payload([1, 2, 4], captain=1),
            7: picks_payload([2, 3, 4], captain=2),
            8: picks_payload([2, 4, 5], captain=2),
        }
        if manager_id not in squads:
            return httpx.Response(404, json={"detail": "Not found."})
        return httpx.Response(200, json=squads[manager_id])
    if "/entry/" in path:
        return httpx.Response(
            200,
            json={
                "id": 42,
                "name": "Test FC",
                "player_first_name": "Test",
                "player_last_name": "Manager",
                "summary_overall_points": 500,
                "summary_overall_rank": 12345,
            },
        )
    if "/leagues-classic/99/" in path:
        return httpx.Response(
            200,
            json={
                "league": {"id": 99, "name": "Office League"},
                "standings": {
                    "has_next": False,
                    "page": 1,
                    "results": [
                        {"entry": 7, "entry_name": "Leaders", "player_name": "Alice", "rank": 1, "total": 540, "event_total": 70},
                        {"entry": 42, "entry_name": "Test FC", "player_name": "Test Manager", "rank": 2, "total": 500, "event_total": 60},
                        {"entry": 8, "entry_name": "Chasers", "player_name": "Bob", "rank": 3, "total": 480, "event_total": 50},
                    ],
                },
            },
        )
    return httpx.Response(404, json={"detail": "Not found."})


def make_fpl_client(handler=fpl_api_handler) -> FPLClient:
    """An FPLClient whose HTTP traffic is served by ``handler``."""
    config = FPLClientConfig(base_url="https://fpl.test/api", retry_delay=0.0)
    http = httpx.AsyncClient(base_url=config.base_url, transport=httpx.MockTransport(handler))
    return FPLClient(config=config, http_client=http)


def sse_body(*events: StreamEvent) -> bytes:
    """Encode events exactly as the chat endpoint frames them."""
    return b"".join(encode_event(event) for event in events)


def json_lines(body: bytes) -> list[dict]:
    """Decode every ``data:`` frame of an SSE body."""
    return [
        json.loads(frame[len("data: ") :])
        for frame in body.decode("utf-8").split("\n\n")
        if frame.startswith("data: ")
    ]


@pytest.fixture
def bootstrap() -> BootstrapStatic:
    return BootstrapStatic.model_validate(bootstrap_payload())


@pytest.fixture
def fixtures() -> list[Fixture]:
    return [Fixture.model_validate(f) for f in FIXTURES]


@pytest.fixture
def fpl_client() -> FPLClient:
    return make_fpl_client()


@pytest.fixture
def tool_context(bootstrap, fixtures, fpl_client) -> ToolContext:
    """Context without a connected manager."""
    return ToolContext(bootstrap=bootstrap, fixtures=fixtures, current_gw=2, fpl_client=fpl_client)


@pytest.fixture
def manager_context(bootstrap, fixtures, fpl_client) -> ToolContext:
    """Context with manager 42 connected."""
    return ToolContext(bootstrap=bootstrap, fixtures=fixtures, current_gw=2, fpl_client=fpl_client, manager_id=42)
