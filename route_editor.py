"""
Ruttredigerare som samordnar rutt, ångra/gör om och routingtjänsten

Alla ändringar av rutten, ångra-historiken och väntande klick sker på
UI-tråden. Routinganropen körs i bakgrundstrådar och deras resultat
skickas tillbaka via UiDispatcher innan de rör något delat tillstånd.
"""

import logging
import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Tuple

from config import WORKER_THREADS, MIN_SNAP_POINTS, MIN_ROUND_TRIP_POINTS
from models import Point, Route, RouteResult
from preferences import SessionPreferences
from routing_providers import RoutingGateway
from storage import RouteStore, RouteSummary
from undo import UndoLedger

logger = logging.getLogger(__name__)


class StatusLevel(Enum):
    INFO = "info"
    PROGRESS = "progress"
    SUCCESS = "success"
    DEGRADED = "degraded"  # Rak linje i stället för väg
    ERROR = "error"


@dataclass
class RouteUpdate:
    """Det som UI:t behöver efter varje avslutad operation"""
    route: Route
    distance_km: float
    elevation_m: int
    level: StatusLevel
    message: str


class UiDispatcher:
    """Kö med callbacks som postas från bakgrundstrådar och körs på UI-tråden"""

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()

    def post(self, callback: Callable[[], None]) -> None:
        self._queue.put(callback)

    def has_pending(self) -> bool:
        return not self._queue.empty()

    def process_pending(self, timeout: Optional[float] = None) -> int:
        """
        Kör alla callbacks som väntar

        Args:
            timeout: Sekunder att vänta på första callbacken, None väntar inte

        Returns:
            Antal körda callbacks
        """
        processed = 0
        try:
            if timeout is None:
                callback = self._queue.get_nowait()
            else:
                callback = self._queue.get(timeout=timeout)
        except queue.Empty:
            return 0

        while True:
            callback()
            processed += 1
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                return processed


class RouteOrchestrator:
    """
    Äger den aktuella rutten och driver routingtjänsten från kartklick

    Högst en routingförfrågan är igång åt gången. Klick som kommer medan
    en förfrågan pågår slås ihop till det senaste.
    """

    def __init__(
        self,
        gateway: RoutingGateway,
        store: Optional[RouteStore] = None,
        preferences: Optional[SessionPreferences] = None,
        executor: Optional[Executor] = None,
        dispatcher: Optional[UiDispatcher] = None,
        listener: Optional[Callable[[RouteUpdate], None]] = None
    ):
        self.gateway = gateway
        self.store = store
        self.preferences = preferences or SessionPreferences()
        self.executor = executor or ThreadPoolExecutor(
            max_workers=WORKER_THREADS, thread_name_prefix="routing"
        )
        self.dispatcher = dispatcher or UiDispatcher()
        self.listener = listener

        self.route = Route()
        self.undo_ledger = UndoLedger()
        self.is_request_in_flight = False
        self.pending_click: Optional[Point] = None
        self.is_generate_mode = False
        self.generate_start_point: Optional[Point] = None
        self.last_update: Optional[RouteUpdate] = None

        self.apply_preferences()

    # ----------------
    # Status till UI
    # ----------------
    def stats(self) -> Tuple[float, int]:
        return self.route.total_distance_km(), self.route.estimated_elevation()

    def _notify(self, level: StatusLevel, message: str) -> None:
        distance_km, elevation_m = self.stats()
        update = RouteUpdate(self.route, distance_km, elevation_m, level, message)
        self.last_update = update
        logger.debug("Status %s: %s", level.value, message)
        if self.listener is not None:
            self.listener(update)

    def apply_preferences(self) -> None:
        prefs = self.preferences.current_user_preferences()
        self.gateway.profile = prefs.preferred_profile

    def _submit(self, on_done: Callable[[Future], None], fn: Callable, *args) -> None:
        future = self.executor.submit(fn, *args)
        future.add_done_callback(lambda f: self.dispatcher.post(partial(on_done, f)))

    @staticmethod
    def _result_of(future: Future, action: str) -> Optional[RouteResult]:
        try:
            return future.result()
        except Exception:
            logger.exception("Oväntat fel vid %s", action)
            return None

    # ----------------
    # Kartklick
    # ----------------
    def handle_map_click(self, lat: float, lon: float) -> None:
        """
        Ta emot ett klick på kartan

        I genereringsläge blir klicket startpunkt för rundturen, annars
        läggs det till i rutten.

        Args:
            lat: Latitud
            lon: Longitud
        """
        point = Point(lat, lon)

        if self.is_generate_mode:
            self.generate_start_point = point
            self.is_generate_mode = False
            self._notify(StatusLevel.INFO, "Startpunkt vald - välj distans och generera rutt")
            return

        self._process_click(point)

    def _process_click(self, point: Point) -> None:
        if self.is_request_in_flight:
            # Bara det senaste klicket sparas
            self.pending_click = point
            return

        self.undo_ledger.checkpoint(self.route.snapshot())

        last = self.route.last_point()
        if last is None:
            self.route.append(point)
            self._notify(StatusLevel.SUCCESS, "Startpunkt tillagd. Klicka för att lägga till fler punkter.")
            return

        self.is_request_in_flight = True
        self._notify(StatusLevel.PROGRESS, "Söker väg längs vägar...")
        self._submit(
            partial(self._finish_snap, point),
            self.gateway.snap_to_roads,
            [last.as_tuple(), point.as_tuple()],
            self.gateway.profile
        )

    def _finish_snap(self, clicked: Point, future: Future) -> None:
        self.is_request_in_flight = False
        result = self._result_of(future, "vägföljning")

        if result is not None and result.point_count >= MIN_SNAP_POINTS:
            # Första punkten är samma som ruttens nuvarande slut
            for lat, lon in result.points[1:]:
                self.route.add_coordinate(lat, lon)
            self.route.add_elevation(result.ascent, result.descent)
            self._notify(StatusLevel.SUCCESS, f"Rutten följer vägar ({result.point_count} punkter)")
        else:
            self.route.append(clicked)
            self._notify(StatusLevel.DEGRADED, "Vägföljning misslyckades - använder rak linje")

        self._replay_pending_click()

    def _replay_pending_click(self) -> None:
        if self.pending_click is None:
            return
        next_point = self.pending_click
        self.pending_click = None
        self._process_click(next_point)

    # ----------------
    # Generering
    # ----------------
    def enter_generate_mode(self) -> None:
        self.is_generate_mode = True
        self.generate_start_point = None
        self._notify(StatusLevel.INFO, "Klicka på kartan för att välja startpunkt")

    def cancel_generate_mode(self) -> None:
        self.is_generate_mode = False
        self._notify(StatusLevel.INFO, "Genereringsläge avbrutet")

    def generate_route(
        self,
        distance_km: Optional[float] = None,
        variety: Optional[int] = None,
        seed: Optional[int] = None
    ) -> bool:
        """
        Starta generering av en rundtur från vald startpunkt

        Args:
            distance_km: Önskad distans, annars användarens inställning
            variety: Antal styrpunkter, annars användarens inställning
            seed: Seed för variation

        Returns:
            True om förfrågan skickades, False om den avvisades
        """
        if self.is_request_in_flight:
            self._notify(StatusLevel.ERROR, "En routingförfrågan pågår redan")
            return False
        if self.generate_start_point is None:
            self._notify(StatusLevel.ERROR, "Välj en startpunkt först!")
            return False

        prefs = self.preferences.current_user_preferences()
        if distance_km is None:
            distance_km = prefs.preferred_distance_km
        if variety is None:
            variety = prefs.preferred_variety

        if distance_km <= 0:
            self._notify(StatusLevel.ERROR, "Distansen måste vara större än noll")
            return False

        self.undo_ledger.checkpoint(self.route.snapshot())
        self.is_request_in_flight = True
        self._notify(StatusLevel.PROGRESS, "Genererar rundtur...")
        self._submit(
            self._finish_generate,
            self.gateway.generate_round_trip,
            self.generate_start_point.as_tuple(),
            distance_km,
            variety,
            seed
        )
        return True

    def _finish_generate(self, future: Future) -> None:
        self.is_request_in_flight = False
        result = self._result_of(future, "generering av rundtur")

        if result is not None and result.point_count >= MIN_ROUND_TRIP_POINTS:
            self.route.load_from_coordinates(result.points)
            self.route.set_elevation(result.ascent, result.descent)
            self._notify(StatusLevel.SUCCESS, f"Rundtur genererad ({result.distance / 1000:.2f} km)")
        else:
            self._notify(StatusLevel.ERROR, "Kunde inte generera rutt. Försök justera inställningarna.")

        self._replay_pending_click()

    # ----------------
    # Redigering
    # ----------------
    @property
    def can_undo(self) -> bool:
        """Ångra är spärrat medan en förfrågan pågår"""
        return not self.is_request_in_flight and self.undo_ledger.can_undo

    @property
    def can_redo(self) -> bool:
        return not self.is_request_in_flight and self.undo_ledger.can_redo

    def undo(self) -> None:
        if not self.can_undo:
            return
        self.undo_ledger.undo(self.route)
        self._notify(StatusLevel.INFO, "Ångrade senaste ändringen")

    def redo(self) -> None:
        if not self.can_redo:
            return
        self.undo_ledger.redo(self.route)
        self._notify(StatusLevel.INFO, "Gjorde om ändringen")

    def clear_route(self) -> None:
        self.undo_ledger.checkpoint(self.route.snapshot())
        self.route.clear()
        self.pending_click = None
        self._notify(StatusLevel.INFO, "Rutten rensad")

    # ----------------
    # Spara och ladda
    # ----------------
    def save_route(self, name: Optional[str]) -> int:
        """
        Spara aktuell rutt under ett namn

        Returns:
            Nytt rutt-id, eller -1 om inget sparades
        """
        if self.route.is_empty:
            self._notify(StatusLevel.ERROR, "Inget att spara ännu.")
            return -1
        if not name or not name.strip():
            self._notify(StatusLevel.ERROR, "Ange ett namn på rutten.")
            return -1
        if self.store is None:
            self._notify(StatusLevel.ERROR, "Ingen lagring konfigurerad.")
            return -1

        name = name.strip()
        route_id = self.store.save_route(
            name,
            self.route.total_distance_km(),
            self.route.estimated_elevation(),
            self.route.coordinates()
        )
        if route_id < 0:
            self._notify(StatusLevel.ERROR, "Kunde inte spara rutten.")
            return -1

        self.route.name = name
        self.route.id = route_id
        self._notify(StatusLevel.SUCCESS, f"Rutten sparad: {name}")
        return route_id

    def list_routes(self) -> List[RouteSummary]:
        if self.store is None:
            return []
        return self.store.list_routes()

    def load_route(self, route_id: int, name: str = "") -> bool:
        """Ersätt aktuell rutt med en sparad, ångra-historiken töms"""
        if self.is_request_in_flight:
            self._notify(StatusLevel.ERROR, "En routingförfrågan pågår redan")
            return False
        if self.store is None:
            self._notify(StatusLevel.ERROR, "Ingen lagring konfigurerad.")
            return False

        points = self.store.load_route_points(route_id)
        if not points:
            self._notify(StatusLevel.ERROR, "Rutten saknar punkter.")
            return False

        route = Route(id=route_id, name=name)
        route.load_from_coordinates(points)
        self.route = route
        self.pending_click = None
        self.undo_ledger.reset()
        self._notify(StatusLevel.SUCCESS, f"Laddade rutt: {name}")
        return True

    def close(self) -> None:
        self.executor.shutdown(wait=False)
