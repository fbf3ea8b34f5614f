"""Fixtures endpoints - annotated fixtures and team strengths."""

from typing import Optional
from fastapi import APIRouter, Query

from reports.fpl_report.data_fetcher import get_data_layer
from reports.fpl_report.fixture_difficulty import group_by_gameweek

router = APIRouter(prefix="/api", tags=["fixtures"])


@router.get("/fixtures")
def get_fixtures(
    gameweek: Optional[int] = Query(None, ge=1),
    team: Optional[int] = Query(None, ge=1),
    finished: Optional[bool] = Query(None),
):
    fixtures = get_data_layer().get_fixtures(gameweek=gameweek, team_id=team, finished=finished)
    grouped = group_by_gameweek(fixtures)
    return {
        "fixtures": fixtures,
        "gameweeks": [
            {"gameweek": gw, "fixtures": items} for gw, items in grouped.items()
        ],
        "total": len(fixtures),
    }


@router.get("/teams/strength")
def get_team_strengths():
    return get_data_layer().get_team_strengths()
