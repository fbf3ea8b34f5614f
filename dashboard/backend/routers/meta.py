"""Meta endpoints - configuration views, data-layer status and manual refresh."""

from fastapi import APIRouter

from reports.fpl_report.data_fetcher import get_data_layer

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/config")
def get_config():
    """The full configuration bundle. Never fails; see is_fallback."""
    return get_data_layer().config.get_config().to_dict()


@router.get("/config/positions")
def get_positions():
    return get_data_layer().config.positions()


@router.get("/config/position-limits")
def get_position_limits():
    return get_data_layer().config.position_limits()


@router.get("/config/teams")
def get_teams():
    return get_data_layer().config.teams()


@router.get("/config/game-rules")
def get_game_rules():
    return get_data_layer().config.game_rules()


@router.get("/config/current-gameweek")
def get_current_gameweek():
    gameweek = get_data_layer().config.current_gameweek()
    return {"current_gameweek": gameweek, "season_active": gameweek is not None}


@router.get("/config/fixture-difficulty")
def get_fixture_difficulty():
    return get_data_layer().config.fixture_difficulty()


@router.get("/status")
def get_status():
    return get_data_layer().status()


@router.post("/refresh")
def refresh():
    """Force a refetch. Upstream failures with nothing cached map to 4xx/5xx."""
    return get_data_layer().refresh()
