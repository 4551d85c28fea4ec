"""
Kartfunktioner för visualisering
"""

import folium
from typing import List, Optional, Tuple

from models import Route


def route_bounds(route: Route) -> Optional[List[List[float]]]:
    """Ruttens hörn [[min_lat, min_lon], [max_lat, max_lon]], None om tom"""
    coords = route.coordinates()
    if not coords:
        return None
    lats = [lat for lat, _ in coords]
    lons = [lon for _, lon in coords]
    return [[min(lats), min(lons)], [max(lats), max(lons)]]


def create_map(
    center: List[float],
    route: Optional[Route] = None,
    generate_start: Optional[Tuple[float, float]] = None,
    auto_fit: bool = True,
    zoom_start: int = 13
) -> folium.Map:
    """
    Skapa Folium-karta med rutt och markörer

    Args:
        center: Kartans centrum [lat, lon]
        route: Rutten att rita
        generate_start: Vald startpunkt för rundtur (lat, lon)
        auto_fit: Anpassa zoom så hela rutten syns
        zoom_start: Zoomnivå om rutten inte anpassas

    Returns:
        Folium Map-objekt
    """
    m = folium.Map(
        location=center,
        zoom_start=zoom_start,
        control_scale=True
    )

    if generate_start:
        folium.Marker(
            generate_start,
            popup="Start för rundtur",
            icon=folium.Icon(color="orange", icon="flag")
        ).add_to(m)

    if not route or route.is_empty:
        return m

    route_coords = [[lat, lon] for lat, lon in route.coordinates()]

    # Startmarkör på första punkten
    folium.Marker(
        route_coords[0],
        popup="Start",
        icon=folium.Icon(color="green", icon="play")
    ).add_to(m)

    if len(route_coords) > 1:
        folium.PolyLine(
            route_coords,
            color="blue",
            weight=4,
            opacity=0.8,
            popup=f"{route.total_distance_km():.2f} km"
        ).add_to(m)

        folium.Marker(
            route_coords[-1],
            popup="Mål",
            icon=folium.Icon(color="red", icon="stop")
        ).add_to(m)

        if auto_fit:
            m.fit_bounds(route_bounds(route))

    return m
