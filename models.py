"""
Datamodeller för ruttredigeraren
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0

LatLon = Tuple[float, float]


class PointRole(Enum):
    """Vilken roll en punkt har i rutten"""
    START = "start"
    WAYPOINT = "waypoint"
    END = "end"
    INTERPOLATED = "interpolated"  # Autogenererad punkt mellan waypoints


class Point:
    """
    Representerar en punkt på rutten

    Koordinaterna går inte att ändra efter skapandet, bara rollen
    märks om när rutten växer. Hash bygger därför enbart på koordinaterna.
    """

    __slots__ = ("_lat", "_lon", "role")

    def __init__(self, lat: float, lon: float, role: PointRole = PointRole.WAYPOINT):
        self._lat = lat
        self._lon = lon
        self.role = role

    @property
    def lat(self) -> float:
        return self._lat

    @property
    def lon(self) -> float:
        return self._lon

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return (self._lat, self._lon, self.role) == (other._lat, other._lon, other.role)

    def __hash__(self) -> int:
        return hash((self._lat, self._lon))

    def __repr__(self) -> str:
        return f"Point(lat={self._lat!r}, lon={self._lon!r}, role={self.role})"

    def distance_to(self, other: "Point") -> float:
        """
        Storcirkelavstånd till en annan punkt (Haversine)

        Args:
            other: Punkten att mäta till

        Returns:
            Avstånd i kilometer
        """
        lat1 = math.radians(self.lat)
        lat2 = math.radians(other.lat)
        dlat = math.radians(other.lat - self.lat)
        dlon = math.radians(other.lon - self.lon)

        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_KM * c

    def copy(self) -> "Point":
        return Point(self.lat, self.lon, self.role)

    def as_tuple(self) -> LatLon:
        return self.lat, self.lon

    def __str__(self) -> str:
        return f"Point({self.lat:.6f}, {self.lon:.6f}, {self.role.name})"


@dataclass
class RouteResult:
    """Resultatet av ett anrop mot routingtjänsten"""
    points: List[LatLon] = field(default_factory=list)
    ascent: float = 0.0  # meter
    descent: float = 0.0  # meter
    distance: float = 0.0  # meter

    def has_points(self) -> bool:
        return bool(self.points)

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def elevation_gain(self) -> float:
        return self.ascent

    @property
    def elevation_loss(self) -> float:
        return self.descent

    def has_elevation_data(self) -> bool:
        return self.ascent > 0 or self.descent > 0


@dataclass(frozen=True)
class RouteSnapshot:
    """
    Oföränderlig ögonblicksbild av en rutt (memento för ångra/gör om)

    Punkterna kopieras in vid skapandet och ut igen vid återställning,
    så varken rutten eller snapshoten delar punktobjekt med varandra.
    """
    points: Tuple[Point, ...]
    id: int = -1
    name: str = ""
    ascent: float = 0.0
    descent: float = 0.0

    @classmethod
    def of(
        cls,
        points: Iterable[Point],
        id: int = -1,
        name: str = "",
        ascent: float = 0.0,
        descent: float = 0.0
    ) -> "RouteSnapshot":
        return cls(tuple(p.copy() for p in points), id, name, ascent, descent)

    def copy_points(self) -> List[Point]:
        return [p.copy() for p in self.points]


class Route:
    """
    En ordnad följd av punkter med identitet och ackumulerad höjddata

    Distansen lagras aldrig utan beräknas från punkterna.
    """

    def __init__(self, id: int = -1, name: str = ""):
        self.id = id
        self._name = name
        self._points: List[Point] = []
        self.ascent = 0.0
        self.descent = 0.0

    @property
    def name(self) -> str:
        return self._name if self._name is not None else ""

    @name.setter
    def name(self, value: Optional[str]) -> None:
        self._name = value

    @property
    def points(self) -> Tuple[Point, ...]:
        return tuple(self._points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def is_empty(self) -> bool:
        return not self._points

    def append(self, point: Optional[Point]) -> None:
        """
        Lägg till en punkt sist i rutten

        Den nya punkten märks alltid END. En tidigare sista punkt som var
        START eller END blir WAYPOINT.

        Args:
            point: Punkten att lägga till, None ignoreras
        """
        if point is None:
            return

        if not self._points:
            point.role = PointRole.START
        else:
            last = self._points[-1]
            if last.role in (PointRole.START, PointRole.END):
                last.role = PointRole.WAYPOINT

        self._points.append(point)
        # Även en första punkt slutar som END
        self._points[-1].role = PointRole.END

    def add_coordinate(self, lat: float, lon: float) -> None:
        self.append(Point(lat, lon, PointRole.WAYPOINT))

    def load_from_coordinates(self, coordinates: Optional[Sequence[LatLon]]) -> None:
        """
        Ersätt hela rutten med en lista koordinater

        Första punkten blir START, sista END och resten WAYPOINT. En lista
        med en enda punkt ger START.

        Args:
            coordinates: Lista med (lat, lon)
        """
        self._points.clear()
        if not coordinates:
            return

        last_index = len(coordinates) - 1
        for i, (lat, lon) in enumerate(coordinates):
            if i == 0:
                role = PointRole.START
            elif i == last_index:
                role = PointRole.END
            else:
                role = PointRole.WAYPOINT
            self._points.append(Point(lat, lon, role))

    def clear(self) -> None:
        self._points.clear()
        self.ascent = 0.0
        self.descent = 0.0

    def coordinates(self) -> List[LatLon]:
        return [p.as_tuple() for p in self._points]

    def last_point(self) -> Optional[Point]:
        return self._points[-1] if self._points else None

    def total_distance_km(self) -> float:
        """Summan av avstånden mellan på varandra följande punkter i km"""
        total = 0.0
        for prev, current in zip(self._points, self._points[1:]):
            total += prev.distance_to(current)
        return total

    def add_elevation(self, ascent: float, descent: float) -> None:
        self.ascent += ascent
        self.descent += descent

    def set_elevation(self, ascent: float, descent: float) -> None:
        self.ascent = ascent
        self.descent = descent

    def estimated_elevation(self) -> int:
        """Stigning avrundad till hela meter (halva avrundas uppåt)"""
        return int(math.floor(self.ascent + 0.5))

    def snapshot(self) -> RouteSnapshot:
        return RouteSnapshot.of(self._points, self.id, self.name, self.ascent, self.descent)

    def restore(self, snapshot: Optional[RouteSnapshot]) -> None:
        """Ersätt punkter, id, namn och höjddata med innehållet i en snapshot"""
        if snapshot is None:
            return
        self._points = snapshot.copy_points()
        self.id = snapshot.id
        self.name = snapshot.name
        self.ascent = snapshot.ascent
        self.descent = snapshot.descent
