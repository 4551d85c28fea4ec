"""
Användarinställningar som styr routing och generering
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from config import (
    DEFAULT_DISTANCE,
    DEFAULT_VARIETY,
    MIN_PREFERRED_DISTANCE,
    MAX_PREFERRED_DISTANCE
)
from routing_providers import RoutingProfile


def clamp_distance(distance_km: float) -> float:
    return max(MIN_PREFERRED_DISTANCE, min(MAX_PREFERRED_DISTANCE, distance_km))


def normalize_variety(variety: int) -> int:
    """
    Avrunda variation till något av alternativen 3, 5 eller 10

    Args:
        variety: Önskat antal styrpunkter

    Returns:
        3, 5 eller 10
    """
    if variety <= 3:
        return 3
    if variety <= 7:
        return 5
    return 10


@dataclass
class UserPreferences:
    """Inställningar för en användare (eller gäst)"""
    preferred_profile: RoutingProfile = RoutingProfile.WALKING
    preferred_distance_km: float = DEFAULT_DISTANCE
    preferred_variety: int = DEFAULT_VARIETY
    auto_fit_route: bool = True
    use_metric_units: bool = True

    def __post_init__(self):
        self.preferred_distance_km = clamp_distance(self.preferred_distance_km)
        self.preferred_variety = normalize_variety(self.preferred_variety)

    def format_distance(self, distance_km: float) -> str:
        if self.use_metric_units:
            if distance_km < 1.0:
                return f"{distance_km * 1000:.0f} m"
            return f"{distance_km:.2f} km"
        return f"{distance_km * 0.621371:.2f} mi"

    def format_elevation(self, elevation_m: float) -> str:
        if self.use_metric_units:
            return f"{elevation_m:.0f} m"
        return f"{elevation_m * 3.28084:.0f} ft"


def _parse_profile(value: Any) -> RoutingProfile:
    if isinstance(value, RoutingProfile):
        return value
    for profile in RoutingProfile:
        if value in (profile.value, profile.name, profile.name.lower()):
            return profile
    return RoutingProfile.WALKING


class SessionPreferences:
    """
    Läser användarinställningar från sessionens state

    Fungerar mot st.session_state eller vilken mapping som helst.
    """

    def __init__(self, state: Optional[Mapping[str, Any]] = None):
        self.state = state if state is not None else {}

    def current_user_preferences(self) -> UserPreferences:
        state = self.state
        return UserPreferences(
            preferred_profile=_parse_profile(state.get("preferred_profile", RoutingProfile.WALKING)),
            preferred_distance_km=float(state.get("preferred_distance_km", DEFAULT_DISTANCE)),
            preferred_variety=int(state.get("preferred_variety", DEFAULT_VARIETY)),
            auto_fit_route=bool(state.get("auto_fit_route", True)),
            use_metric_units=bool(state.get("use_metric_units", True))
        )
