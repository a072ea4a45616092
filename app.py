"""
SwiftShip Dispatch - Operations Dashboard
======================================

Streamlit front end over the dispatch engine.

Features:
- KPI cards for deliveries and fleet availability
- Dispatch board: auto-assign all, ranked candidates per delivery
- Active deliveries: advance through the lifecycle or cancel
- Booking and driver onboarding forms
- Driver roster and performance analytics
- pydeck map of drivers and pickup points

Run:
    streamlit run app.py
"""

from typing import Dict, List

import pandas as pd
import pydeck as pdk
import streamlit as st

from swiftdispatch import analytics, config, performance, utils
from swiftdispatch.dispatch import DispatchEngine
from swiftdispatch.errors import DispatchError
from swiftdispatch.models import (
    ACTIVE_STATUSES,
    Delivery,
    DeliveryStatus,
    Driver,
    DriverStatus,
    ProofOfDelivery,
    VehicleType,
)
from swiftdispatch.store import load_sample_data

# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="SwiftShip Dispatch",
    page_icon="🚚",
    layout="wide",
    initial_sidebar_state="expanded"
)

# =============================================================================
# CUSTOM STYLING
# =============================================================================

st.markdown("""
<style>
    .main .block-container {
        padding-top: 2rem;
        padding-bottom: 2rem;
    }

    .kpi-card {
        background: linear-gradient(135deg, #2563eb 0%, #7c3aed 100%);
        border-radius: 16px;
        padding: 1.25rem;
        color: white;
        text-align: center;
        box-shadow: 0 10px 40px rgba(37, 99, 235, 0.25);
    }

    .kpi-card.green {
        background: linear-gradient(135deg, #059669 0%, #10b981 100%);
    }

    .kpi-card.orange {
        background: linear-gradient(135deg, #f59e0b 0%, #ef4444 100%);
    }

    .kpi-value {
        font-size: 2.25rem;
        font-weight: 800;
        margin: 0.5rem 0;
    }

    .kpi-label {
        font-size: 0.85rem;
        opacity: 0.9;
        text-transform: uppercase;
        letter-spacing: 1px;
    }

    .section-header {
        font-size: 1.4rem;
        font-weight: 700;
        color: #1e293b;
        margin: 1.5rem 0 1rem 0;
        padding-bottom: 0.5rem;
        border-bottom: 3px solid #2563eb;
    }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)

STATUS_COLORS: Dict[DeliveryStatus, List[int]] = {
    DeliveryStatus.PENDING: [245, 158, 11],
    DeliveryStatus.ASSIGNED: [59, 130, 246],
    DeliveryStatus.PICKUP: [124, 58, 237],
    DeliveryStatus.IN_TRANSIT: [37, 99, 235],
    DeliveryStatus.DELIVERED: [16, 185, 129],
    DeliveryStatus.CANCELLED: [239, 68, 68],
}

DRIVER_COLORS: Dict[DriverStatus, List[int]] = {
    DriverStatus.AVAILABLE: [16, 185, 129],
    DriverStatus.BUSY: [245, 158, 11],
    DriverStatus.OFFLINE: [148, 163, 184],
}

# =============================================================================
# ENGINE STATE
# =============================================================================


def get_engine() -> DispatchEngine:
    """One engine per browser session, seeded from the sample data."""
    if "engine" not in st.session_state:
        deliveries, drivers = load_sample_data()
        st.session_state["engine"] = DispatchEngine(deliveries, drivers)
    return st.session_state["engine"]


def run_action(action, success_message: str) -> None:
    """Run an engine call and report the outcome as a notification."""
    try:
        action()
    except DispatchError as e:
        st.session_state["flash"] = ("error", f"{e}")
    else:
        st.session_state["flash"] = ("success", success_message)
    st.rerun()


def show_flash() -> None:
    flash = st.session_state.pop("flash", None)
    if flash is None:
        return
    level, message = flash
    if level == "error":
        st.error(message)
    elif level == "warning":
        st.warning(message)
    else:
        st.success(message)


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar() -> None:
    """Operational toggles. They update the config module for this process."""
    st.sidebar.markdown("## ⚙️ Operations")
    st.sidebar.markdown("---")

    config.AUTO_ASSIGNMENT = st.sidebar.toggle(
        "Auto assignment", value=config.AUTO_ASSIGNMENT,
        help="Enable the auto-assign buttons"
    )
    config.ALLOW_CANCELLATIONS = st.sidebar.toggle(
        "Allow cancellations", value=config.ALLOW_CANCELLATIONS,
        help="When off, cancelling is rejected"
    )
    config.REQUIRE_SIGNATURE = st.sidebar.toggle(
        "Require signature", value=config.REQUIRE_SIGNATURE,
        help="Delivering requires a recipient signature"
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Reset sample data", use_container_width=True):
        st.session_state.pop("engine", None)
        st.rerun()

    st.sidebar.markdown("### 📖 About")
    st.sidebar.info("""
    **Assign (single)**: nearest available driver first

    **Auto-assign all**: round-robin over available drivers

    State lives in memory and resets on reload.
    """)


# =============================================================================
# KPI DISPLAY
# =============================================================================

def render_kpi_row(deliveries: List[Delivery], drivers: List[Driver]) -> None:
    stats = analytics.dashboard_stats(deliveries, drivers)
    col1, col2, col3, col4 = st.columns(4)

    cards = [
        (col1, "", "Active Deliveries", stats.active_deliveries),
        (col2, "green", "Completed", stats.completed),
        (col3, "orange", "Pending Pickups", stats.pending),
        (col4, "", "Available Drivers", f"{stats.available_drivers} / {len(drivers)}"),
    ]
    for col, css, label, value in cards:
        with col:
            st.markdown(f"""
            <div class="kpi-card {css}">
                <div class="kpi-label">{label}</div>
                <div class="kpi-value">{value}</div>
            </div>
            """, unsafe_allow_html=True)


# =============================================================================
# MAP VISUALIZATION
# =============================================================================

def render_map(deliveries: List[Delivery], drivers: List[Driver]) -> None:
    """Drivers (large dots) and open delivery pickups (small dots)."""
    driver_points = [
        {
            "name": d.name,
            "lat": d.location.lat,
            "lng": d.location.lng,
            "color": DRIVER_COLORS[d.status],
            "label": f"{d.name} ({d.status.value})",
        }
        for d in drivers
    ]
    pickup_points = [
        {
            "lat": d.pickup_loc.lat,
            "lng": d.pickup_loc.lng,
            "color": STATUS_COLORS[d.status],
            "label": f"{d.tracking_id} ({d.status.value})",
        }
        for d in deliveries
        if not d.status.is_terminal
    ]
    points = driver_points + pickup_points
    if not points:
        st.info("Nothing to show on the map.")
        return

    view = pdk.ViewState(
        latitude=sum(p["lat"] for p in points) / len(points),
        longitude=sum(p["lng"] for p in points) / len(points),
        zoom=11,
    )
    layers = [
        pdk.Layer(
            "ScatterplotLayer",
            data=driver_points,
            get_position="[lng, lat]",
            get_fill_color="color",
            get_radius=180,
            pickable=True,
        ),
        pdk.Layer(
            "ScatterplotLayer",
            data=pickup_points,
            get_position="[lng, lat]",
            get_fill_color="color",
            get_radius=90,
            pickable=True,
        ),
    ]
    st.pydeck_chart(pdk.Deck(layers=layers, initial_view_state=view, tooltip={"text": "{label}"}))


# =============================================================================
# DISPATCH BOARD
# =============================================================================

def render_dispatch(engine: DispatchEngine, deliveries: List[Delivery]) -> None:
    st.markdown('<div class="section-header">📦 Pending Deliveries</div>', unsafe_allow_html=True)

    pending = [d for d in deliveries if d.status == DeliveryStatus.PENDING]
    if st.button("⚡ Auto-assign all", disabled=not config.AUTO_ASSIGNMENT or not pending):
        result = engine.assign_all()
        if result.has_failures or result.unavailable:
            st.session_state["flash"] = ("warning" if result.has_failures else "error", result.notice)
        else:
            st.session_state["flash"] = ("success", result.notice)
        st.rerun()

    if not pending:
        st.info("No pending deliveries.")
        return

    for delivery in pending:
        with st.expander(f"{delivery.tracking_id} · {delivery.pickup_address.street} → {delivery.delivery_address.street}"):
            st.caption(
                f"{delivery.package_details.type} · {delivery.package_details.weight} kg · "
                f"{delivery.priority} · customer {delivery.customer_name or '-'}"
            )
            candidates = engine.candidates_for(delivery.id)
            if not candidates:
                st.warning("No available drivers")
                continue

            table = pd.DataFrame([
                {
                    "Driver": c.driver.name,
                    "Vehicle": c.driver.vehicle_type.value,
                    "Distance": utils.format_distance(c.distance_km),
                    "Rating": c.driver.rating,
                }
                for c in candidates
            ])
            st.dataframe(table, use_container_width=True, hide_index=True)

            col1, col2 = st.columns(2)
            with col1:
                choice = st.selectbox(
                    "Driver",
                    options=[c.driver.id for c in candidates],
                    format_func=lambda driver_id, cs=candidates: next(
                        c.driver.name for c in cs if c.driver.id == driver_id
                    ),
                    key=f"pick-{delivery.id}",
                )
                if st.button("Assign", key=f"assign-{delivery.id}"):
                    run_action(lambda: engine.assign(delivery.id, choice), f"Assigned {delivery.tracking_id}")
            with col2:
                st.write("")
                if st.button("Assign nearest", key=f"nearest-{delivery.id}", disabled=not config.AUTO_ASSIGNMENT):
                    run_action(lambda: engine.assign_nearest(delivery.id), f"Assigned {delivery.tracking_id} to nearest driver")


# =============================================================================
# ACTIVE DELIVERIES
# =============================================================================

def render_active(engine: DispatchEngine, deliveries: List[Delivery], drivers: List[Driver]) -> None:
    st.markdown('<div class="section-header">🚚 Active Deliveries</div>', unsafe_allow_html=True)

    names = {d.id: d.name for d in drivers}
    active = [d for d in deliveries if d.status in ACTIVE_STATUSES]
    if not active:
        st.info("No deliveries in progress.")
        return

    for delivery in active:
        col1, col2, col3, col4 = st.columns([3, 2, 2, 2])
        with col1:
            st.markdown(f"**{delivery.tracking_id}** · {delivery.status.value} · {names.get(delivery.driver_id, '-')}")
        if delivery.status == DeliveryStatus.IN_TRANSIT:
            with col2:
                signature = st.text_input("Signature", key=f"sig-{delivery.id}", label_visibility="collapsed",
                                          placeholder="Signature")
            with col3:
                if st.button("Mark delivered", key=f"adv-{delivery.id}"):
                    proof = ProofOfDelivery(signature=signature) if signature else None
                    run_action(lambda: engine.advance_status(delivery.id, proof), f"{delivery.tracking_id} delivered")
        else:
            with col3:
                if st.button("Advance", key=f"adv-{delivery.id}"):
                    run_action(lambda: engine.advance_status(delivery.id), f"{delivery.tracking_id} advanced")
        with col4:
            if st.button("Cancel", key=f"cancel-{delivery.id}"):
                run_action(lambda: engine.cancel(delivery.id), f"{delivery.tracking_id} cancelled")

    counts = analytics.status_counts(deliveries)
    st.bar_chart(pd.Series({s.value: n for s, n in counts.items()}, name="deliveries"))


# =============================================================================
# INTAKE FORMS
# =============================================================================

def _address(street: str, lat: float, lng: float) -> Dict:
    return {
        "street": street,
        "city": "New York",
        "postalCode": "",
        "coordinates": {"lat": lat, "lng": lng},
    }


def render_booking_form(engine: DispatchEngine) -> None:
    """New delivery booking; lands at the back of the pending queue."""
    with st.expander("➕ Book a delivery"):
        with st.form("booking", clear_on_submit=True):
            customer = st.text_input("Customer name")
            phone = st.text_input("Customer phone")
            col1, col2 = st.columns(2)
            with col1:
                pickup = st.text_input("Pickup street")
                pickup_lat = st.number_input("Pickup lat", value=config.DEPOT_LAT, format="%.4f")
                pickup_lng = st.number_input("Pickup lng", value=config.DEPOT_LNG, format="%.4f")
            with col2:
                dropoff = st.text_input("Delivery street")
                dropoff_lat = st.number_input("Delivery lat", value=config.DEPOT_LAT + 0.02, format="%.4f")
                dropoff_lng = st.number_input("Delivery lng", value=config.DEPOT_LNG + 0.02, format="%.4f")
            col1, col2, col3 = st.columns(3)
            package_type = col1.selectbox("Package", ["document", "electronics", "food", "clothing", "medical", "other"])
            weight = col2.number_input("Weight (kg)", min_value=0.0, value=1.0)
            value = col3.number_input("Declared value", min_value=0.0, value=50.0)
            priority = st.selectbox("Priority", ["standard", "express"])

            if st.form_submit_button("Book"):
                try:
                    delivery = engine.book_delivery({
                        "pickup_address": _address(pickup, pickup_lat, pickup_lng),
                        "delivery_address": _address(dropoff, dropoff_lat, dropoff_lng),
                        "package_details": {"type": package_type, "weight": weight, "value": value},
                        "customer_name": customer,
                        "customer_phone": phone,
                        "priority": priority,
                    })
                except (KeyError, ValueError) as e:
                    st.session_state["flash"] = ("error", f"Booking rejected: {e}")
                else:
                    st.session_state["flash"] = ("success", f"Booked {delivery.tracking_id}")
                st.rerun()


def render_onboarding_form(engine: DispatchEngine) -> None:
    """New driver, placed near the depot when no position is known."""
    with st.expander("➕ Onboard a driver"):
        with st.form("onboarding", clear_on_submit=True):
            name = st.text_input("Name")
            col1, col2 = st.columns(2)
            email = col1.text_input("Email")
            phone = col2.text_input("Phone")
            col1, col2 = st.columns(2)
            vehicle = col1.selectbox("Vehicle", [v.value for v in VehicleType])
            plate = col2.text_input("License plate")

            if st.form_submit_button("Onboard"):
                if not name.strip():
                    st.session_state["flash"] = ("error", "Driver name is required")
                else:
                    driver = engine.onboard_driver({
                        "name": name.strip(),
                        "vehicle_type": vehicle,
                        "email": email,
                        "phone": phone,
                        "vehicle_info": {"licensePlate": plate} if plate else {},
                    })
                    st.session_state["flash"] = ("success", f"Onboarded {driver.name}")
                st.rerun()


# =============================================================================
# DRIVERS & ANALYTICS
# =============================================================================

def render_drivers(drivers: List[Driver]) -> None:
    st.markdown('<div class="section-header">👤 Drivers</div>', unsafe_allow_html=True)

    col1, col2 = st.columns([3, 1])
    with col1:
        term = st.text_input("Search", placeholder="Name, email or plate")
    with col2:
        status = st.selectbox("Status", options=["all"] + [s.value for s in DriverStatus])

    matches = analytics.search_drivers(
        drivers, term, status=None if status == "all" else DriverStatus(status)
    )
    table = pd.DataFrame([
        {
            "ID": d.id,
            "Name": d.name,
            "Vehicle": d.vehicle_type.value,
            "Status": d.status.value,
            "Rating": d.rating,
            "Deliveries": d.total_deliveries,
            "Active": ", ".join(sorted(d.active_deliveries)),
        }
        for d in matches
    ])
    st.dataframe(table, use_container_width=True, hide_index=True)


def render_analytics(engine: DispatchEngine, deliveries: List[Delivery], drivers: List[Driver]) -> None:
    st.markdown('<div class="section-header">📊 Performance</div>', unsafe_allow_html=True)

    ops = analytics.operations_summary(deliveries, drivers)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Completion rate", f"{ops.completion_rate}%")
    col2.metric("Cancel rate", f"{ops.cancel_rate}%")
    col3.metric("Avg driver rating", ops.average_driver_rating)
    col4.metric("Declared value", f"${ops.total_revenue:,.0f}")

    summary = engine.get_performance_comparison()
    frame = performance.metrics_frame(summary.leaderboard)
    st.dataframe(frame, use_container_width=True, hide_index=True)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Rating bands**")
        st.bar_chart(pd.Series(summary.band_counts, name="drivers"))
    with col2:
        st.markdown("**Deliveries per day**")
        st.line_chart(analytics.daily_volume(deliveries))

    top = analytics.top_drivers_by_volume(drivers)
    st.markdown("**Top drivers by volume**")
    st.bar_chart(pd.Series({d.name: d.total_deliveries for d in top}, name="deliveries"))

    if summary.top_performer is not None:
        st.success(
            f"**Top performer:** {summary.top_performer.name} with "
            f"{summary.top_performer.total_deliveries} deliveries"
        )


# =============================================================================
# MAIN APPLICATION
# =============================================================================

def main():
    """Main application entry point."""
    st.markdown("""
    <div style="text-align: center; padding: 1rem 0 1.5rem 0;">
        <h1 style="font-size: 2.6rem; font-weight: 800; color: #1e293b; margin-bottom: 0.25rem;">
            SwiftShip Dispatch
        </h1>
        <p style="font-size: 1.1rem; color: #64748b;">Assignment, tracking and driver performance</p>
    </div>
    """, unsafe_allow_html=True)

    render_sidebar()
    engine = get_engine()
    show_flash()

    deliveries, drivers = engine.snapshot()
    render_kpi_row(deliveries, drivers)
    st.markdown("<br>", unsafe_allow_html=True)

    dispatch_tab, active_tab, drivers_tab, analytics_tab, map_tab = st.tabs(
        ["Dispatch", "Active", "Drivers", "Analytics", "Map"]
    )
    with dispatch_tab:
        render_booking_form(engine)
        render_dispatch(engine, deliveries)
    with active_tab:
        render_active(engine, deliveries, drivers)
    with drivers_tab:
        render_onboarding_form(engine)
        render_drivers(drivers)
    with analytics_tab:
        render_analytics(engine, deliveries, drivers)
    with map_tab:
        render_map(deliveries, drivers)

    st.markdown("---")
    st.markdown("""
    <div style="text-align: center; color: #888; padding: 1rem;">
        SwiftShip Logistics | Dispatch Dashboard
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
