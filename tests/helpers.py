import json
from concurrent.futures import Future

from routing_providers import RoutingProfile


class DeferredExecutor:
    """Executor som bara kör jobb när testet ber om det"""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def run_next(self):
        future, fn, args, kwargs = self.jobs.pop(0)
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

    def shutdown(self, wait=True):
        pass


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)


class FakeGateway:
    """Gateway som svarar med förberedda resultat och minns anropen"""

    def __init__(self):
        self.profile = RoutingProfile.WALKING
        self.snap_calls = []
        self.snap_results = []
        self.round_trip_calls = []
        self.round_trip_result = None

    def snap_to_roads(self, coordinates, profile=None):
        self.snap_calls.append((list(coordinates), profile))
        if self.snap_results:
            outcome = self.snap_results.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return None

    def generate_round_trip(self, start, distance_km, points=5, seed=None):
        self.round_trip_calls.append((start, distance_km, points, seed))
        return self.round_trip_result


def geojson_body(coordinates, ascent=None, descent=None, distance=None):
    """Ett ORS-liknande GeoJSON-svar med [lon, lat(, höjd)]-koordinater"""
    properties = {"summary": {}}
    if ascent is not None:
        properties["ascent"] = ascent
    if descent is not None:
        properties["descent"] = descent
    if distance is not None:
        properties["summary"]["distance"] = distance
    return {
        "type": "FeatureCollection",
        "features": [{
            "type": "Feature",
            "properties": properties,
            "geometry": {"type": "LineString", "coordinates": coordinates}
        }]
    }
