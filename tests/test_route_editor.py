from concurrent.futures import ThreadPoolExecutor

import pytest

from models import PointRole, RouteResult
from preferences import SessionPreferences
from route_editor import RouteOrchestrator, StatusLevel, UiDispatcher
from routing_providers import RoutingProfile
from storage import RouteStore

A = (59.0, 18.0)
B = (59.001, 18.001)


@pytest.fixture
def updates():
    return []


@pytest.fixture
def orchestrator(gateway, executor, updates):
    return RouteOrchestrator(
        gateway=gateway,
        store=RouteStore(":memory:"),
        executor=executor,
        dispatcher=UiDispatcher(),
        listener=updates.append
    )


def complete_next(orchestrator):
    orchestrator.executor.run_next()
    return orchestrator.dispatcher.process_pending()


# ----------------
# Klick
# ----------------
def test_first_click_is_added_without_routing(orchestrator, gateway, updates):
    orchestrator.handle_map_click(10.0, 20.0)

    assert orchestrator.route.coordinates() == [(10.0, 20.0)]
    assert orchestrator.route.points[0].role is PointRole.END
    assert orchestrator.stats() == (0.0, 0)
    assert gateway.snap_calls == []
    assert not orchestrator.is_request_in_flight
    assert orchestrator.undo_ledger.can_undo
    assert updates[-1].level is StatusLevel.SUCCESS


def test_second_click_appends_snapped_path(orchestrator, gateway, snapped_result, updates):
    gateway.snap_results = [snapped_result]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)

    assert orchestrator.is_request_in_flight
    assert updates[-1].level is StatusLevel.PROGRESS
    assert len(orchestrator.route) == 1

    assert complete_next(orchestrator) == 1

    assert not orchestrator.is_request_in_flight
    assert gateway.snap_calls == [([A, B], RoutingProfile.WALKING)]
    assert orchestrator.route.coordinates() == [A] + snapped_result.points[1:]
    assert (orchestrator.route.ascent, orchestrator.route.descent) == (12.0, 4.0)
    assert orchestrator.route.points[-1].role is PointRole.END
    assert updates[-1].level is StatusLevel.SUCCESS
    assert updates[-1].distance_km > 0


def test_failed_snap_falls_back_to_straight_line(orchestrator, gateway, updates):
    gateway.snap_results = [None]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    complete_next(orchestrator)

    assert orchestrator.route.coordinates() == [A, B]
    assert orchestrator.route.ascent == 0.0
    assert updates[-1].level is StatusLevel.DEGRADED


def test_degenerate_and_crashing_snap_also_fall_back(orchestrator, gateway, updates):
    gateway.snap_results = [RouteResult(points=[A]), RuntimeError("oväntat")]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    complete_next(orchestrator)
    orchestrator.handle_map_click(59.002, 18.002)
    complete_next(orchestrator)

    assert orchestrator.route.coordinates() == [A, B, (59.002, 18.002)]
    assert updates[-1].level is StatusLevel.DEGRADED
    assert not orchestrator.is_request_in_flight


def test_clicks_during_request_collapse_to_latest(orchestrator, gateway, executor, snapped_result):
    gateway.snap_results = [snapped_result, None]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)

    orchestrator.handle_map_click(1.0, 1.0)
    orchestrator.handle_map_click(2.0, 2.0)

    assert orchestrator.pending_click.as_tuple() == (2.0, 2.0)
    assert len(executor.jobs) == 1

    complete_next(orchestrator)

    # Det väntande klicket skickas direkt som ny förfrågan
    assert orchestrator.pending_click is None
    assert orchestrator.is_request_in_flight
    assert len(executor.jobs) == 1
    assert executor.jobs[0][2][0] == [snapped_result.points[-1], (2.0, 2.0)]

    complete_next(orchestrator)

    assert len(gateway.snap_calls) == 2
    assert orchestrator.route.coordinates()[-1] == (2.0, 2.0)
    assert (1.0, 1.0) not in orchestrator.route.coordinates()
    assert not executor.jobs


def test_clicks_during_request_do_not_checkpoint(orchestrator, gateway):
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    orchestrator.handle_map_click(3.0, 3.0)
    orchestrator.handle_map_click(4.0, 4.0)

    assert len(orchestrator.undo_ledger._undo) == 2
    assert len(orchestrator.route) == 1


def test_undo_restores_state_before_click(orchestrator, gateway, snapped_result):
    gateway.snap_results = [snapped_result]
    orchestrator.handle_map_click(*A)
    before = orchestrator.route.snapshot()
    orchestrator.handle_map_click(*B)
    complete_next(orchestrator)
    after = orchestrator.route.snapshot()

    orchestrator.undo()
    assert orchestrator.route.snapshot() == before

    orchestrator.redo()
    assert orchestrator.route.snapshot() == after


def test_preferred_profile_is_used_for_snapping(gateway, executor):
    prefs = SessionPreferences({"preferred_profile": RoutingProfile.CYCLING})
    orchestrator = RouteOrchestrator(gateway, preferences=prefs, executor=executor, dispatcher=UiDispatcher())

    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    executor.run_next()

    assert gateway.profile is RoutingProfile.CYCLING
    assert gateway.snap_calls[0][1] is RoutingProfile.CYCLING


def test_completion_waits_for_ui_thread(gateway, snapped_result):
    gateway.snap_results = [snapped_result]
    dispatcher = UiDispatcher()
    worker = ThreadPoolExecutor(max_workers=1)
    orchestrator = RouteOrchestrator(gateway, executor=worker, dispatcher=dispatcher)

    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    worker.shutdown(wait=True)

    assert len(orchestrator.route) == 1
    assert orchestrator.is_request_in_flight

    assert dispatcher.process_pending(timeout=5) == 1
    assert len(orchestrator.route) == 3
    assert not orchestrator.is_request_in_flight


def test_dispatcher_without_work_returns_zero():
    dispatcher = UiDispatcher()

    assert dispatcher.process_pending() == 0
    assert dispatcher.process_pending(timeout=0.01) == 0
    assert not dispatcher.has_pending()


# ----------------
# Generering
# ----------------
LOOP = RouteResult(points=[A, (59.01, 18.0), (59.0, 18.01), A], ascent=40.0, descent=38.0, distance=5100.0)


def test_generate_mode_click_sets_start_point(orchestrator, gateway):
    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)

    assert not orchestrator.is_generate_mode
    assert orchestrator.generate_start_point.as_tuple() == A
    assert orchestrator.route.is_empty
    assert not orchestrator.undo_ledger.can_undo


def test_generate_replaces_route_with_loop(orchestrator, gateway, updates):
    orchestrator.handle_map_click(1.0, 1.0)
    before = orchestrator.route.snapshot()
    gateway.round_trip_result = LOOP
    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)

    assert orchestrator.generate_route(distance_km=5.0, variety=2, seed=7)
    assert orchestrator.is_request_in_flight
    complete_next(orchestrator)

    assert gateway.round_trip_calls == [(A, 5.0, 2, 7)]
    assert orchestrator.route.coordinates() == LOOP.points
    roles = [p.role for p in orchestrator.route.points]
    assert roles == [PointRole.START, PointRole.WAYPOINT, PointRole.WAYPOINT, PointRole.END]
    assert (orchestrator.route.ascent, orchestrator.route.descent) == (40.0, 38.0)
    assert updates[-1].level is StatusLevel.SUCCESS

    orchestrator.undo()
    assert orchestrator.route.snapshot() == before


def test_generate_uses_preference_defaults(gateway, executor):
    prefs = SessionPreferences({"preferred_distance_km": 8.0, "preferred_variety": 10})
    orchestrator = RouteOrchestrator(gateway, preferences=prefs, executor=executor, dispatcher=UiDispatcher())
    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)

    orchestrator.generate_route()
    executor.run_next()

    assert gateway.round_trip_calls == [(A, 8.0, 10, None)]


def test_failed_generation_leaves_route_untouched(orchestrator, gateway, updates):
    orchestrator.handle_map_click(1.0, 1.0)
    before = orchestrator.route.snapshot()
    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)

    orchestrator.generate_route(distance_km=5.0)
    complete_next(orchestrator)

    assert orchestrator.route.snapshot() == before
    assert updates[-1].level is StatusLevel.ERROR
    assert not orchestrator.is_request_in_flight


def test_generate_rejected_while_request_in_flight(orchestrator, gateway, executor):
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    orchestrator.generate_start_point = orchestrator.route.points[0].copy()

    assert not orchestrator.generate_route(distance_km=5.0)
    assert len(executor.jobs) == 1
    assert gateway.round_trip_calls == []


@pytest.mark.parametrize("distance", [0.0, -2.0])
def test_generate_rejects_bad_input_before_network(orchestrator, gateway, executor, distance):
    assert not orchestrator.generate_route(distance_km=5.0)

    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)
    assert not orchestrator.generate_route(distance_km=distance)

    assert executor.jobs == []
    assert not orchestrator.undo_ledger.can_undo


def test_click_during_generation_is_replayed_on_new_route(orchestrator, gateway, executor):
    gateway.round_trip_result = LOOP
    orchestrator.enter_generate_mode()
    orchestrator.handle_map_click(*A)
    orchestrator.generate_route(distance_km=5.0)
    orchestrator.handle_map_click(*B)

    complete_next(orchestrator)

    assert orchestrator.is_request_in_flight
    executor.run_next()
    assert gateway.snap_calls[0][0] == [A, B]


# ----------------
# Redigering, spara och ladda
# ----------------
def test_clear_route_is_undoable(orchestrator):
    orchestrator.handle_map_click(*A)
    orchestrator.clear_route()
    assert orchestrator.route.is_empty

    orchestrator.undo()
    assert orchestrator.route.coordinates() == [A]


def test_undo_redo_without_history_do_not_notify(orchestrator, updates):
    orchestrator.undo()
    orchestrator.redo()

    assert updates == []


def test_save_and_load_route(orchestrator, gateway):
    gateway.snap_results = [None]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)
    complete_next(orchestrator)

    route_id = orchestrator.save_route("  Kvällsrunda ")

    assert route_id > 0
    assert orchestrator.route.id == route_id
    assert orchestrator.route.name == "Kvällsrunda"
    summary = orchestrator.list_routes()[0]
    assert summary.name == "Kvällsrunda"
    assert summary.distance == pytest.approx(orchestrator.route.total_distance_km())

    orchestrator.clear_route()
    assert orchestrator.load_route(summary.id, summary.name)

    assert orchestrator.route.coordinates() == [A, B]
    assert orchestrator.route.points[0].role is PointRole.START
    assert orchestrator.route.name == "Kvällsrunda"
    assert not orchestrator.undo_ledger.can_undo


def test_save_rejects_empty_route_and_blank_name(orchestrator, updates):
    assert orchestrator.save_route("Tom") == -1
    assert updates[-1].level is StatusLevel.ERROR

    orchestrator.handle_map_click(*A)
    assert orchestrator.save_route("   ") == -1
    assert orchestrator.list_routes() == []


def test_load_unknown_route_fails(orchestrator, updates):
    assert not orchestrator.load_route(12345)
    assert updates[-1].level is StatusLevel.ERROR


def test_without_store_save_and_load_report_errors(gateway, executor):
    orchestrator = RouteOrchestrator(gateway, executor=executor, dispatcher=UiDispatcher())
    orchestrator.handle_map_click(*A)

    assert orchestrator.save_route("Runda") == -1
    assert not orchestrator.load_route(1)
    assert orchestrator.list_routes() == []
    assert orchestrator.last_update.level is StatusLevel.ERROR


def test_load_rejected_while_request_in_flight(orchestrator, gateway, executor):
    saved_id = orchestrator.store.save_route("Sparad", 1.0, 0, [(10.0, 10.0), (10.1, 10.1)])
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)

    assert not orchestrator.load_route(saved_id, "Sparad")
    assert orchestrator.last_update.level is StatusLevel.ERROR

    complete_next(orchestrator)

    assert orchestrator.route.coordinates() == [A, B]
    assert orchestrator.undo_ledger.can_undo
    assert orchestrator.load_route(saved_id, "Sparad")
    assert orchestrator.route.coordinates() == [(10.0, 10.0), (10.1, 10.1)]


def test_undo_and_redo_wait_for_request_in_flight(orchestrator, gateway, snapped_result):
    gateway.snap_results = [snapped_result]
    orchestrator.handle_map_click(*A)
    orchestrator.handle_map_click(*B)

    assert orchestrator.undo_ledger.can_undo
    assert not orchestrator.can_undo
    orchestrator.undo()
    assert len(orchestrator.route) == 1

    complete_next(orchestrator)

    assert orchestrator.can_undo
    orchestrator.undo()
    assert orchestrator.route.coordinates() == [A]
    assert orchestrator.can_redo


def test_cancel_generate_mode_returns_to_drawing(orchestrator, gateway, executor):
    orchestrator.handle_map_click(*A)
    orchestrator.enter_generate_mode()
    orchestrator.cancel_generate_mode()

    assert not orchestrator.is_generate_mode
    assert orchestrator.generate_start_point is None
    assert orchestrator.last_update.level is StatusLevel.INFO

    orchestrator.handle_map_click(*B)

    assert orchestrator.is_request_in_flight
    assert executor.jobs[0][2][0] == [A, B]
