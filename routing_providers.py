"""
Routing-gateway mot OpenRouteService: vägföljning och rundturer
"""

import json
import logging
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import requests

from config import (
    ORS_BASE_URL,
    REQUEST_TIMEOUT,
    MAX_RESPONSE_POINTS,
    MIN_SNAP_POINTS,
    MIN_ROUND_TRIP_POINTS,
    DEFAULT_ROUND_TRIP_POINTS
)
from models import LatLon, RouteResult

logger = logging.getLogger(__name__)


class RoutingProfile(Enum):
    """Färdsätt som routingtjänsten känner till"""
    WALKING = "foot-walking"
    CYCLING = "cycling-regular"
    DRIVING = "driving-car"


# Rundturer är en fritidsfunktion, bil provas aldrig
ROUND_TRIP_PROFILES = (RoutingProfile.WALKING, RoutingProfile.CYCLING)


def snap_fallback_chain(preferred: Optional[RoutingProfile]) -> List[RoutingProfile]:
    """
    Ordningen som profiler provas i vid vägföljning

    Föredragen profil först, sedan gång om den inte redan provats och sist
    bil om den inte redan provats.

    Args:
        preferred: Användarens föredragna profil (None tolkas som gång)

    Returns:
        Lista med profiler i försöksordning
    """
    if preferred is None:
        preferred = RoutingProfile.WALKING

    chain = [preferred]
    if preferred is not RoutingProfile.WALKING:
        chain.append(RoutingProfile.WALKING)
    if preferred is not RoutingProfile.DRIVING:
        chain.append(RoutingProfile.DRIVING)
    return chain


def convert_km_to_meters(km: float) -> int:
    return int(km * 1000)


def normalize_round_trip_points(points: int) -> int:
    return max(points, MIN_ROUND_TRIP_POINTS)


def subsample_points(points: Sequence[LatLon], max_points: int = MAX_RESPONSE_POINTS) -> List[LatLon]:
    """
    Gallra en lång geometri till högst max_points punkter

    Var N:te punkt behålls och sista punkten finns alltid med, så ruttens
    slutpunkt inte försvinner.

    Args:
        points: Punkter att gallra
        max_points: Övre gräns för antal punkter

    Returns:
        Ny lista med gallrade punkter
    """
    count = len(points)
    if count <= max_points:
        return list(points)

    step = math.ceil(count / max_points)
    sampled = list(points[::step])

    if (count - 1) % step != 0:
        if len(sampled) >= max_points:
            sampled[-1] = points[-1]
        else:
            sampled.append(points[-1])
    return sampled


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _first_number(key: str, *sources: Dict[str, Any]) -> float:
    for source in sources:
        if isinstance(source, dict) and key in source:
            number = _as_float(source[key])
            if number is not None:
                return number
    return 0.0


def _first_feature(data: Dict[str, Any]) -> Dict[str, Any]:
    features = data.get("features")
    if isinstance(features, list) and features and isinstance(features[0], dict):
        return features[0]
    if data.get("type") == "Feature":
        return data
    return {}


def _find_coordinates(data: Dict[str, Any], feature: Dict[str, Any]) -> List[Any]:
    for container in (feature.get("geometry"), data.get("geometry"), data):
        if isinstance(container, dict):
            coordinates = container.get("coordinates")
            if isinstance(coordinates, list) and coordinates and isinstance(coordinates[0], list):
                return coordinates
    return []


def parse_geojson_response(body: Any) -> Optional[RouteResult]:
    """
    Parsa ett GeoJSON-svar från routingtjänsten till RouteResult

    Saknade fält blir 0 respektive tom punktlista. Koordinaterna kommer
    som [lon, lat(, höjd)] och vänds till (lat, lon).

    Args:
        body: Råtext (str/bytes) eller redan avkodad JSON

    Returns:
        RouteResult, eller None om tjänsten rapporterade ett fel
    """
    if isinstance(body, (str, bytes, bytearray)):
        try:
            data = json.loads(body)
        except ValueError as e:
            logger.warning("Kunde inte avkoda svaret som JSON: %s", e)
            return RouteResult()
    else:
        data = body

    if not isinstance(data, dict):
        logger.warning("Oväntat svarsformat: %s", type(data).__name__)
        return RouteResult()

    if "error" in data:
        logger.warning("Routingtjänsten svarade med fel: %s", str(data["error"])[:500])
        return None

    feature = _first_feature(data)
    properties = feature.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    summary = properties.get("summary")
    if not isinstance(summary, dict):
        summary = {}

    ascent = _first_number("ascent", properties, summary, data)
    descent = _first_number("descent", properties, summary, data)
    distance = _first_number("distance", summary, properties, data)

    points = []
    for coord in _find_coordinates(data, feature):
        if not isinstance(coord, (list, tuple)) or len(coord) < 2:
            continue
        lon = _as_float(coord[0])
        lat = _as_float(coord[1])
        if lat is None or lon is None:
            logger.debug("Hoppar över ogiltig koordinat: %s", coord)
            continue
        points.append((lat, lon))

    if not points:
        logger.warning("Inga koordinater hittades i svaret")

    if len(points) > MAX_RESPONSE_POINTS:
        original_count = len(points)
        points = subsample_points(points)
        logger.info("Gallrade %d punkter till %d", original_count, len(points))

    return RouteResult(points=points, ascent=ascent, descent=descent, distance=distance)


class RoutingGateway:
    """
    Tillståndslös fasad mot OpenRouteService

    Enda tillståndet är den föredragna profilen som styr vägföljningen.
    Alla publika anrop returnerar None vid fel i stället för att kasta.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = ORS_BASE_URL,
        timeout=REQUEST_TIMEOUT,
        profile: RoutingProfile = RoutingProfile.WALKING
    ):
        self.name = "ORS"
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.profile = profile

    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.api_key,
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json, application/geo+json, */*"
        }

    def _url(self, profile: RoutingProfile) -> str:
        return f"{self.base_url}/v2/directions/{profile.value}/geojson"

    def build_route_request(self, coordinates: Sequence[LatLon]) -> dict:
        """Request-body för en rutt genom givna punkter"""
        return {
            "coordinates": [[lon, lat] for lat, lon in coordinates],
            "elevation": True,
            "format": "geojson"
        }

    def build_round_trip_request(
        self,
        start: LatLon,
        distance_m: int,
        points: int,
        seed: Optional[int] = None
    ) -> dict:
        """Request-body för en rundtur från startpunkten"""
        round_trip = {
            "length": distance_m,
            "points": points
        }
        if seed is not None:
            round_trip["seed"] = seed

        return {
            "coordinates": [[start[1], start[0]]],
            "elevation": True,
            "options": {"round_trip": round_trip},
            "format": "geojson"
        }

    def snap_to_roads(
        self,
        coordinates: Optional[Sequence[LatLon]],
        profile: Optional[RoutingProfile] = None
    ) -> Optional[RouteResult]:
        """
        Följ vägar mellan punkterna, med reservprofiler vid fel

        Args:
            coordinates: Minst två (lat, lon) i ordning
            profile: Föredragen profil, annars gatewayens

        Returns:
            RouteResult från första lyckade profil, eller None
        """
        if not self.has_api_key() or not coordinates or len(coordinates) < 2:
            return None

        body = self.build_route_request(coordinates)
        chain = snap_fallback_chain(profile or self.profile)

        for attempt, current in enumerate(chain):
            if attempt > 0:
                logger.info("Försöker igen med reservprofil %s", current.value)
            result = self._request_route(body, current, MIN_SNAP_POINTS)
            if result is not None:
                return result

        logger.warning("Vägföljning misslyckades med alla profiler: %s",
                       ", ".join(p.value for p in chain))
        return None

    def generate_round_trip(
        self,
        start: Optional[LatLon],
        distance_km: float,
        points: int = DEFAULT_ROUND_TRIP_POINTS,
        seed: Optional[int] = None
    ) -> Optional[RouteResult]:
        """
        Generera en rundtur som börjar och slutar i startpunkten

        Args:
            start: (lat, lon) för start
            distance_km: Önskad distans i km, måste vara > 0
            points: Antal styrpunkter, minst 3
            seed: Seed för variation

        Returns:
            RouteResult eller None vid fel
        """
        if not self.has_api_key() or start is None or distance_km <= 0:
            return None

        distance_m = convert_km_to_meters(distance_km)
        points = normalize_round_trip_points(points)
        body = self.build_round_trip_request(start, distance_m, points, seed)

        for current in ROUND_TRIP_PROFILES:
            result = self._request_route(body, current, MIN_ROUND_TRIP_POINTS)
            if result is not None:
                return result
            logger.info("Rundtur med %s misslyckades", current.value)

        return None

    def _post(self, url: str, body: dict) -> requests.Response:
        return requests.post(url, json=body, headers=self._headers(), timeout=self.timeout)

    def _request_route(
        self,
        body: dict,
        profile: RoutingProfile,
        min_points: int
    ) -> Optional[RouteResult]:
        """Ett enskilt försök mot en profil, None om försöket misslyckades"""
        url = self._url(profile)
        logger.info("Routingförfrågan med profil %s", profile.value)

        try:
            response = self._post(url, body)
        except requests.RequestException as e:
            logger.warning("Routing med %s misslyckades: %s", profile.value, e)
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Routing med %s gav HTTP %d: %s",
                profile.value, response.status_code, response.text[:500]
            )
            return None

        result = parse_geojson_response(response.text)
        if result is None:
            return None

        if result.point_count < min_points:
            logger.warning(
                "Routing med %s gav för få punkter: %d",
                profile.value, result.point_count
            )
            return None

        logger.info(
            "Routing med %s lyckades: %d punkter, stigning %.0f m, nedför %.0f m",
            profile.value, result.point_count, result.ascent, result.descent
        )
        return result
