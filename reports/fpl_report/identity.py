"""Identity collaborator interface.

Sign-in, registration and the profile store live outside this package. The
data layer only reads a manager's preferences to tailor recommendations;
anything that satisfies IdentityProvider can supply them.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Protocol, runtime_checkable

RISK_TOLERANCES = ('low', 'medium', 'high')


@dataclass
class UserPreferences:
    favorite_team: Optional[int] = None
    risk_tolerance: str = 'medium'
    notifications: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'UserPreferences':
        data = data or {}
        tolerance = str(data.get('risk_tolerance') or 'medium').lower()
        if tolerance not in RISK_TOLERANCES:
            tolerance = 'medium'
        try:
            team = int(data.get('favorite_team'))
        except (TypeError, ValueError):
            team = None
        return cls(
            favorite_team=team,
            risk_tolerance=tolerance,
            notifications=bool(data.get('notifications', True)),
        )


@dataclass
class UserProfile:
    uid: str
    email: str
    display_name: str = ''
    preferences: UserPreferences = field(default_factory=UserPreferences)
    manager_id: Optional[int] = None
    team_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@runtime_checkable
class IdentityProvider(Protocol):
    """What the dashboard expects from an identity service.

    Each call returns the signed-in profile or raises the provider's own error.
    """

    def login(self, email: str, password: str) -> UserProfile:
        ...

    def register(self, email: str, password: str, display_name: str = '') -> UserProfile:
        ...

    def logout(self) -> None:
        ...

    def reset_password(self, email: str) -> None:
        ...

    def update_preferences(self, uid: str, preferences: UserPreferences) -> UserProfile:
        ...
