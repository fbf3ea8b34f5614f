"""ETL Module for the FPL data layer.

This module provides the upstream boundary of the pipeline:

- fetchers.py: Talk to the FPL API with timeouts and normalized failures
- transformers.py: Validate raw JSON into typed, immutable records
- errors.py: Failure taxonomy and decode diagnostics

Usage:
    from etl.fetchers import FPLFetcher

    fetcher = FPLFetcher()
    payload = fetcher.get_bootstrap_static()
"""

from etl.errors import (
    TransportFailure,
    Timeout,
    RateLimited,
    ServerUnavailable,
    NotFound,
    NetworkUnreachable,
    Unexpected,
    MalformedRecord,
)
from etl.fetchers import FPLFetcher
from etl.transformers import (
    BootstrapPayload,
    Player,
    Team,
    PositionType,
    Event,
    GameSettings,
    Fixture,
    decode_bootstrap,
    decode_fixtures,
)

__all__ = [
    'FPLFetcher',
    'TransportFailure',
    'Timeout',
    'RateLimited',
    'ServerUnavailable',
    'NotFound',
    'NetworkUnreachable',
    'Unexpected',
    'MalformedRecord',
    'BootstrapPayload',
    'Player',
    'Team',
    'PositionType',
    'Event',
    'GameSettings',
    'Fixture',
    'decode_bootstrap',
    'decode_fixtures',
]
