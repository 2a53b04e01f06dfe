"""Captain, transfer, price-change and chip tools backed by the scoring engine."""

import math
from typing import Any, Literal

from pydantic import BaseModel, Field

from fpl_chat.models.fpl import POSITION_IDS
from fpl_chat.services.scoring import CHIP_LABELS, PriceChangeCandidate
from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import ToolContext, format_price
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)


def _round1(value: float) -> float:
    return round(value, 1)


class CaptainRecommendationsInput(BaseModel):
    """Input schema for captain recommendations."""

    squad_only: bool | None = Field(
        None, description="If true, only recommend captains from the user's squad (requires manager ID)"
    )
    limit: int | None = Field(None, description="Maximum number of recommendations (default: 5)")


async def get_captain_recommendations(params: CaptainRecommendationsInput, context: ToolContext) -> Any:
    players = context.bootstrap.elements

    if params.squad_only and context.manager_id:
        try:
            picks = await context.fpl_client.get_manager_picks(context.manager_id, context.current_gw)
        except Exception as e:
            logger.warning(f"Could not load squad for captain picks: {e}")
            return error_result("Failed to fetch squad. Make sure your manager ID is connected.")
        squad_ids = {pick.element for pick in picks.picks}
        players = [p for p in players if p.id in squad_ids]

    picks = context.scoring.score_captain_options(players, context.fixtures, context.current_gw)

    return [
        {
            "rank": rank,
            "player": {
                "name": pick.player.web_name,
                "team": context.team_short_name(pick.player.team),
                "position": context.position_name(pick.player.element_type),
            },
            "score": _round1(pick.score),
            "opponent": context.team_short_name(pick.opponent_id),
            "isHome": pick.is_home,
            "difficulty": pick.difficulty,
            "category": pick.category,
            "reasoning": {
                "form": _round1(pick.form_score),
                "fixture": _round1(pick.fixture_score),
                "xgi": _round1(pick.xgi_score),
                "setPieces": _round1(pick.set_piece_score),
            },
        }
        for rank, pick in enumerate(picks[: params.limit or 5], start=1)
    ]


def create_captain_recommendations_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_captain_recommendations",
        description=(
            "Get ranked captain recommendations based on form, fixtures, xGI, and set piece involvement. "
            "Can filter to show only players in the user's squad."
        ),
        input_schema_class=CaptainRecommendationsInput,
        handler=get_captain_recommendations,
    )


class TransferRecommendationsInput(BaseModel):
    """Input schema for transfer recommendations."""

    position: Literal["GKP", "DEF", "MID", "FWD"] | None = Field(
        None, description="Filter recommendations by position"
    )
    max_price: float | None = Field(None, description="Maximum price in millions")
    limit: int | None = Field(None, description="Maximum number of recommendations (default: 10)")


async def get_transfer_recommendations(params: TransferRecommendationsInput, context: ToolContext) -> Any:
    players = [p for p in context.bootstrap.elements if p.minutes > 0]
    if params.position:
        players = [p for p in players if p.element_type == POSITION_IDS[params.position]]
    if params.max_price:
        players = [p for p in players if p.now_cost <= params.max_price * 10]

    targets = context.scoring.score_transfer_targets(players, context.fixtures, context.current_gw)

    return [
        {
            "rank": rank,
            "player": context.player_summary(target.player),
            "score": _round1(target.score),
            "upcomingDifficulty": _round1(target.upcoming_difficulty),
            "reasoning": {
                "form": _round1(target.form_score),
                "fixture": _round1(target.fixture_score),
                "value": _round1(target.value_score),
                "xgi": _round1(target.xgi_score),
            },
        }
        for rank, target in enumerate(targets[: params.limit or 10], start=1)
    ]


def create_transfer_recommendations_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_transfer_recommendations",
        description=(
            "Get ranked transfer-in recommendations based on form, fixtures, value, and xGI. Optionally "
            "filter by position or price."
        ),
        input_schema_class=TransferRecommendationsInput,
        handler=get_transfer_recommendations,
    )


class PriceChangesInput(BaseModel):
    """Input schema for price change predictions."""

    direction: Literal["rise", "fall", "both"] | None = Field(
        None, description="Filter by price change direction (default: both)"
    )
    limit: int | None = Field(None, description="Maximum number of results (default: 10)")


async def get_price_changes(params: PriceChangesInput, context: ToolContext) -> Any:
    limit = params.limit or 10
    prediction = context.scoring.predict_price_changes(context.bootstrap.elements)

    def format_candidate(candidate: PriceChangeCandidate) -> dict[str, Any]:
        return {
            "player": context.player_summary(candidate.player),
            "direction": candidate.direction,
            "probability": round(candidate.probability * 100),
            "netTransfers": candidate.net_transfers,
            "alreadyMoved": candidate.cost_change_momentum != 0,
        }

    if params.direction == "rise":
        return [format_candidate(c) for c in prediction.risers[:limit]]
    if params.direction == "fall":
        return [format_candidate(c) for c in prediction.fallers[:limit]]

    half = math.ceil(limit / 2)
    return {
        "risers": [format_candidate(c) for c in prediction.risers[:half]],
        "fallers": [format_candidate(c) for c in prediction.fallers[:half]],
    }


def create_price_changes_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_price_changes",
        description="Get players most likely to rise or fall in price based on transfer activity.",
        input_schema_class=PriceChangesInput,
        handler=get_price_changes,
    )


class ChipAdviceInput(BaseModel):
    """Input schema for chip strategy."""

    chip: Literal["wildcard", "freehit", "bboost", "3xc"] | None = Field(
        None, description="Specific chip to analyze (default: all available)"
    )


async def get_chip_advice(params: ChipAdviceInput, context: ToolContext) -> list[dict[str, Any]]:
    # Chip usage is not tracked, so every chip is treated as available.
    chips = [params.chip] if params.chip else list(CHIP_LABELS)

    analyses = context.scoring.analyze_chip_timing(
        context.bootstrap.elements,
        context.fixtures,
        context.bootstrap.events,
        context.current_gw,
        chips,
    )

    return [
        {
            "chip": a.chip,
            "label": a.label,
            "currentGwScore": a.current_gw_score,
            "bestGw": a.best_gw,
            "bestGwScore": a.best_gw_score,
            "recommendation": a.recommendation,
            "summary": a.summary,
            "upcomingGws": [
                {"gameweek": s.gw, "score": s.score, "reasoning": s.reasoning} for s in a.gw_scores[:5]
            ],
        }
        for a in analyses
    ]


def create_chip_advice_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_chip_advice",
        description=(
            "Get chip strategy recommendations including optimal timing for Wildcard, Free Hit, Bench Boost, "
            "and Triple Captain."
        ),
        input_schema_class=ChipAdviceInput,
        handler=get_chip_advice,
    )
