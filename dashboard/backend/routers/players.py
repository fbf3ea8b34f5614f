"""Player endpoints - filtered player list, history and insights."""

from typing import Optional
from fastapi import APIRouter, Query

from reports.fpl_report.data_fetcher import get_data_layer
from reports.fpl_report.identity import UserPreferences

router = APIRouter(prefix="/api", tags=["players"])


@router.get("/players")
def get_players(
    search: Optional[str] = Query(None, max_length=64),
    position: Optional[int] = Query(None, ge=1),
    team: Optional[int] = Query(None, ge=1),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: str = Query("total_points"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(20, ge=1, le=1000),
):
    return get_data_layer().get_players(
        search=search,
        position=position,
        team=team,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        order=order,
        limit=limit,
    )


@router.get("/players/{player_id}/history")
def get_player_history(player_id: int):
    history = get_data_layer().get_player_history(player_id)
    return {"player_id": player_id, "history": history.to_dict(orient="records")}


@router.get("/insights")
def get_insights(
    risk_tolerance: str = Query("medium"),
    favorite_team: Optional[int] = Query(None, ge=1),
):
    preferences = UserPreferences.from_dict(
        {"risk_tolerance": risk_tolerance, "favorite_team": favorite_team})
    return get_data_layer().get_insights(preferences)


@router.get("/insights/recommendations")
def get_recommendations(
    risk_tolerance: str = Query("medium"),
    favorite_team: Optional[int] = Query(None, ge=1),
):
    preferences = UserPreferences.from_dict(
        {"risk_tolerance": risk_tolerance, "favorite_team": favorite_team})
    return get_data_layer().get_recommendations(preferences)
