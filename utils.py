"""
Hjälpfunktioner för ruttredigeraren
"""

import logging
from datetime import datetime

import gpxpy
import gpxpy.gpx

from config import LOG_LEVEL
from models import Route


def setup_logging(level: str = LOG_LEVEL) -> None:
    """
    Konfigurera loggning för hela appen

    Args:
        level: Loggnivå som text, t.ex. "INFO"
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
    )


def create_gpx(route: Route, name: str = "Rutt") -> str:
    """
    Skapa GPX-fil från en rutt

    Args:
        route: Rutten att exportera
        name: Namn på rutten

    Returns:
        GPX som sträng
    """
    gpx = gpxpy.gpx.GPX()

    # Lägg till metadata
    gpx.creator = "Ruttredigerare"
    gpx.description = f"Rutt på {route.total_distance_km():.2f} km"

    # Skapa track
    gpx_track = gpxpy.gpx.GPXTrack()
    gpx_track.name = name or route.name or "Rutt"
    gpx.tracks.append(gpx_track)

    # Skapa segment
    gpx_segment = gpxpy.gpx.GPXTrackSegment()
    gpx_track.segments.append(gpx_segment)

    now = datetime.now()
    for point in route.points:
        gpx_segment.points.append(gpxpy.gpx.GPXTrackPoint(point.lat, point.lon, time=now))

    if route.ascent > 0 or route.descent > 0:
        gpx_track.description = f"Höjdökning: {route.ascent:.0f}m, höjdförlust: {route.descent:.0f}m"

    return gpx.to_xml()


def get_route_statistics(route: Route) -> dict:
    """
    Beräkna statistik för en rutt

    Args:
        route: Rutten

    Returns:
        Dictionary med statistik
    """
    distance_km = route.total_distance_km()
    return {
        "distance_km": distance_km,
        "distance_m": distance_km * 1000,
        "elevation_gain": route.ascent,
        "elevation_loss": route.descent,
        "estimated_elevation": route.estimated_elevation(),
        "num_points": len(route),
        "name": route.name,
        "id": route.id
    }
