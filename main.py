"""
Huvudapplikation för Streamlit ruttredigerare
"""

import streamlit as st
from streamlit_folium import st_folium
from datetime import datetime

# Importera moduler
from config import DEFAULT_DISTANCE, DEFAULT_VARIETY, DEFAULT_CENTER, DATABASE_PATH, POLL_INTERVAL, VARIETY_OPTIONS
from map_utils import create_map
from preferences import SessionPreferences
from route_editor import RouteOrchestrator, StatusLevel
from routing_providers import RoutingGateway, RoutingProfile
from storage import RouteStore
from utils import create_gpx, get_route_statistics, setup_logging

PROFILE_LABELS = {
    RoutingProfile.WALKING: "Gång",
    RoutingProfile.CYCLING: "Cykel",
    RoutingProfile.DRIVING: "Bil"
}


@st.cache_resource
def get_route_store() -> RouteStore:
    return RouteStore(DATABASE_PATH)


def init_session_state():
    """Initiera session state"""
    if "preferred_profile" not in st.session_state:
        st.session_state.preferred_profile = RoutingProfile.WALKING
    if "preferred_distance_km" not in st.session_state:
        st.session_state.preferred_distance_km = DEFAULT_DISTANCE
    if "preferred_variety" not in st.session_state:
        st.session_state.preferred_variety = DEFAULT_VARIETY
    if "auto_fit_route" not in st.session_state:
        st.session_state.auto_fit_route = True
    if "use_metric_units" not in st.session_state:
        st.session_state.use_metric_units = True
    if "draw_mode" not in st.session_state:
        st.session_state.draw_mode = False
    if "route_seed" not in st.session_state:
        st.session_state.route_seed = 0
    if "last_click" not in st.session_state:
        st.session_state.last_click = None
    if "orchestrator" not in st.session_state:
        api_key = st.secrets["ORS_API_KEY"] if "ORS_API_KEY" in st.secrets else None
        st.session_state.orchestrator = RouteOrchestrator(
            gateway=RoutingGateway(api_key),
            store=get_route_store(),
            preferences=SessionPreferences(st.session_state)
        )


def show_status(orchestrator: RouteOrchestrator):
    """Visa senaste statusmeddelandet"""
    update = orchestrator.last_update
    if update is None:
        st.info("Klar - rutter följer vägar")
        return

    if update.level is StatusLevel.SUCCESS:
        st.success(update.message)
    elif update.level is StatusLevel.DEGRADED:
        st.warning(update.message)
    elif update.level is StatusLevel.ERROR:
        st.error(update.message)
    else:
        st.info(update.message)


@st.fragment(run_every=POLL_INTERVAL)
def poll_routing():
    """Hämta in färdiga routingsvar medan en förfrågan pågår"""
    orchestrator = st.session_state.orchestrator
    if orchestrator.dispatcher.process_pending():
        st.rerun()
    if orchestrator.is_request_in_flight:
        st.caption("Routing pågår...")


def handle_click(orchestrator: RouteOrchestrator, map_state: dict):
    """Skicka vidare nya kartklick till redigeraren"""
    if not map_state or not map_state.get("last_clicked"):
        return

    clicked = map_state["last_clicked"]
    click = (clicked["lat"], clicked["lng"])
    if click == st.session_state.last_click:
        return
    st.session_state.last_click = click

    if orchestrator.is_generate_mode or st.session_state.draw_mode:
        orchestrator.handle_map_click(*click)
        st.rerun()


def main():
    """Huvudfunktion för Streamlit-appen"""
    st.set_page_config(
        page_title="Ruttredigerare",
        page_icon="🗺️",
        layout="wide"
    )

    setup_logging()
    init_session_state()
    orchestrator = st.session_state.orchestrator
    orchestrator.dispatcher.process_pending()

    st.title("Ruttredigerare")
    st.markdown("Klicka fram en rutt längs vägar eller generera en rundtur")

    # Sidebar för inställningar
    with st.sidebar:
        st.header("Inställningar")

        st.selectbox(
            "Färdsätt",
            list(RoutingProfile),
            format_func=lambda p: PROFILE_LABELS.get(p, p.value),
            key="preferred_profile"
        )
        st.checkbox("Anpassa kartan efter rutten", key="auto_fit_route")
        st.checkbox("Metriska enheter", key="use_metric_units")
        orchestrator.apply_preferences()

        st.divider()

        # Rita
        st.subheader("Rita")
        st.toggle("Ritläge", key="draw_mode", help="Klicka på kartan för att lägga till punkter")

        col_undo, col_redo, col_clear = st.columns(3)
        with col_undo:
            if st.button("Ångra", use_container_width=True, disabled=not orchestrator.can_undo):
                orchestrator.undo()
        with col_redo:
            if st.button("Gör om", use_container_width=True, disabled=not orchestrator.can_redo):
                orchestrator.redo()
        with col_clear:
            if st.button("Rensa", use_container_width=True):
                orchestrator.clear_route()

        st.divider()

        # Generera rundtur
        st.subheader("Rundtur")
        st.number_input(
            "Distans (km)",
            min_value=0.5,
            max_value=50.0,
            step=0.5,
            key="preferred_distance_km"
        )
        st.select_slider(
            "Variation",
            options=list(VARIETY_OPTIONS),
            key="preferred_variety",
            help="Antal styrpunkter i rundturen"
        )

        if orchestrator.is_generate_mode:
            st.info("Klicka på kartan för att välja startpunkt")
            if st.button("Avbryt val av startpunkt", use_container_width=True):
                orchestrator.cancel_generate_mode()
        elif st.button("Välj startpunkt", use_container_width=True):
            orchestrator.enter_generate_mode()

        col_gen1, col_gen2 = st.columns(2)
        with col_gen1:
            generate_button = st.button("Generera rutt", type="primary", use_container_width=True,
                                        disabled=orchestrator.generate_start_point is None)
        with col_gen2:
            regenerate_button = st.button("Ny variant", type="secondary", use_container_width=True,
                                          disabled=orchestrator.generate_start_point is None,
                                          help="Generera en annan rutt med samma inställningar")

        if generate_button or regenerate_button:
            # Öka seed för ny variant
            if regenerate_button:
                st.session_state.route_seed += 10
            orchestrator.generate_route(seed=st.session_state.route_seed or None)

        st.divider()

        # Spara och ladda
        st.subheader("Spara och ladda")
        route_name = st.text_input(
            "Ruttnamn",
            value=orchestrator.route.name or f"Rutt {datetime.now().strftime('%Y-%m-%d')}",
            key="route_name"
        )
        if st.button("Spara rutt", use_container_width=True):
            orchestrator.save_route(route_name)

        saved_routes = orchestrator.list_routes()
        if saved_routes:
            choice = st.selectbox("Sparade rutter", saved_routes, format_func=str)
            if st.button("Ladda rutt", use_container_width=True,
                         disabled=orchestrator.is_request_in_flight):
                orchestrator.load_route(choice.id, choice.name)
        else:
            st.caption("Inga sparade rutter")

    # Huvudinnehåll
    col1, col2 = st.columns([2, 1])
    prefs = orchestrator.preferences.current_user_preferences()

    with col1:
        st.subheader("Karta")

        last_point = orchestrator.route.last_point()
        center = [last_point.lat, last_point.lon] if last_point else DEFAULT_CENTER
        start = orchestrator.generate_start_point

        m = create_map(
            center,
            orchestrator.route,
            start.as_tuple() if start else None,
            auto_fit=prefs.auto_fit_route
        )

        map_state = st_folium(
            m,
            key="map",
            width=None,
            height=500
        )
        handle_click(orchestrator, map_state)

    with col2:
        st.subheader("Sammanfattning")
        show_status(orchestrator)
        poll_routing()

        stats = get_route_statistics(orchestrator.route)
        st.metric("Distans", prefs.format_distance(stats["distance_km"]))
        col_up, col_down = st.columns(2)
        with col_up:
            st.metric("Höjdökning", prefs.format_elevation(stats["estimated_elevation"]))
        with col_down:
            st.metric("Höjdförlust", prefs.format_elevation(stats["elevation_loss"]))
        st.metric("Punkter", stats["num_points"])

        if not orchestrator.route.is_empty:
            st.divider()

            # GPX-export
            st.subheader("Export")
            st.download_button(
                label="Ladda ner GPX",
                data=create_gpx(orchestrator.route, route_name),
                file_name=f"{route_name.replace(' ', '_')}.gpx",
                mime="application/gpx+xml",
                use_container_width=True
            )

    # Footer
    st.divider()
    st.markdown(
        """
        <div style='text-align: center; color: gray; font-size: 0.8em;'>
        Använder OpenRouteService & OpenStreetMap
        </div>
        """,
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
