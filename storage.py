"""
Lagring av sparade rutter i SQLite
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import List, Optional, Sequence

from config import DATABASE_PATH
from models import LatLon

logger = logging.getLogger(__name__)


@dataclass
class RouteSummary:
    """Översikt av en sparad rutt"""
    id: int
    name: str
    distance: float  # km
    elevation: int  # meter

    def __str__(self) -> str:
        return f"{self.name} ({self.distance:.2f} km, {self.elevation} m)"


class RouteStore:
    """Sparar och läser rutter med punkter"""

    def __init__(self, path: str = DATABASE_PATH):
        self.path = path
        self._connection = sqlite3.connect(path, check_same_thread=False)
        self._create_tables()

    def _create_tables(self) -> None:
        with self._connection:
            self._connection.execute(
                "CREATE TABLE IF NOT EXISTS routes ("
                "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
                "  name TEXT,"
                "  distance REAL,"
                "  elevation INTEGER)"
            )
            self._connection.execute(
                "CREATE TABLE IF NOT EXISTS route_points ("
                "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
                "  route_id INTEGER,"
                "  lat REAL,"
                "  lon REAL,"
                "  FOREIGN KEY(route_id) REFERENCES routes(id))"
            )

    def save_route(
        self,
        name: str,
        distance_km: float,
        elevation_m: int,
        points: Optional[Sequence[LatLon]]
    ) -> int:
        """
        Spara en rutt med dess punkter

        Args:
            name: Ruttnamn
            distance_km: Distans i km
            elevation_m: Höjdökning i meter
            points: Punkter som (lat, lon)

        Returns:
            Ruttens nya id, eller -1 vid fel
        """
        try:
            with self._connection:
                cursor = self._connection.execute(
                    "INSERT INTO routes (name, distance, elevation) VALUES (?, ?, ?)",
                    (name, distance_km, elevation_m)
                )
                route_id = cursor.lastrowid
                if points:
                    self._connection.executemany(
                        "INSERT INTO route_points (route_id, lat, lon) VALUES (?, ?, ?)",
                        [(route_id, lat, lon) for lat, lon in points]
                    )
        except sqlite3.Error as e:
            logger.error("Kunde inte spara rutt %r: %s", name, e)
            return -1

        logger.info("Sparade rutt %r med id %d (%d punkter)", name, route_id, len(points or []))
        return route_id

    def load_route_points(self, route_id: int) -> List[LatLon]:
        try:
            rows = self._connection.execute(
                "SELECT lat, lon FROM route_points WHERE route_id = ? ORDER BY id ASC",
                (route_id,)
            ).fetchall()
        except sqlite3.Error as e:
            logger.error("Kunde inte läsa punkter för rutt %d: %s", route_id, e)
            return []
        return [(lat, lon) for lat, lon in rows]

    def list_routes(self) -> List[RouteSummary]:
        """Alla sparade rutter, nyaste först"""
        try:
            rows = self._connection.execute(
                "SELECT id, name, distance, elevation FROM routes ORDER BY id DESC"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error("Kunde inte lista rutter: %s", e)
            return []
        return [RouteSummary(id=row[0], name=row[1] or "", distance=row[2] or 0.0, elevation=row[3] or 0)
                for row in rows]

    def close(self) -> None:
        self._connection.close()
