import streamlit as st
from supabase import create_client

from medcrm import views
from medcrm.auth import AuthService
from medcrm.config import configure_logging, load_settings
from medcrm.database import CRMDatabase
from medcrm.errors import ConfigError, CRMError, ValidationError
from medcrm.helpers import PRODUCT_CODES, create_hospital_dataframe, parse_date
from medcrm.models import (
    ActivityType,
    HospitalLevel,
    Ownership,
    Region,
    RoleType,
    SalesStage,
    Sentiment,
    UsageType,
)
from medcrm.preferences import PreferenceStore
from medcrm.remote import ResilientCaller
from medcrm.session import SessionKeeper
from medcrm.store import MutationCoordinator

from datetime import date, datetime, timedelta
from dataclasses import replace
import time
import pandas as pd

from streamlit_js_eval import streamlit_js_eval
import extra_streamlit_components as stx

# ---------------------------
# 1. SETUP & CONNECTION
# ---------------------------
st.set_page_config(page_title="MedCRM", page_icon="🏥", layout="wide")

st.markdown("""
    <style>
    [data-testid="stHeader"] a {
        display: none;
    }
    [data-testid="stToolbar"] {
        visibility: hidden;
    }
    .block-container {
        padding-top: 1rem !important;
    }
    </style>
    """, unsafe_allow_html=True)

REFRESH_COOKIE = "medcrm_refresh"


@st.cache_resource
def get_settings():
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


try:
    settings = get_settings()
except ConfigError as e:
    st.error(f"Configuration error: {e}")
    st.stop()


def init_services():
    # One client per browser session: the Supabase auth session lives on the client.
    client = create_client(settings.supabase_url, settings.supabase_key)
    preferences = PreferenceStore(st.session_state)
    keeper = SessionKeeper.from_settings(client, settings, preferences=preferences)
    keeper.listen()
    caller = ResilientCaller.from_settings(keeper, settings)
    db = CRMDatabase(client, caller)
    st.session_state.keeper = keeper
    st.session_state.preferences = preferences
    st.session_state.crm = MutationCoordinator(db)
    st.session_state.auth = AuthService(client, keeper, db)


if 'crm' not in st.session_state:
    init_services()

keeper = st.session_state.keeper
preferences = st.session_state.preferences
crm = st.session_state.crm
auth = st.session_state.auth
state = crm.state

cookie_manager = stx.CookieManager(key="medcrm_cookie_manager")


def remember_login():
    if keeper.session and keeper.session.refresh_token:
        if cookie_manager.get(cookie=REFRESH_COOKIE) != keeper.session.refresh_token:
            expires = datetime.now() + timedelta(days=30)
            cookie_manager.set(REFRESH_COOKIE, keeper.session.refresh_token, expires_at=expires, key="set_refresh")


def sign_out():
    auth.sign_out()
    state.clear()
    cookie_manager.delete(REFRESH_COOKIE, key="del_refresh")
    time.sleep(0.5)
    st.rerun()


# ---------------------------
# 2. AUTHENTICATION
# ---------------------------
def login_section():
    if auth.is_authenticated:
        return

    with st.spinner("Checking session..."):
        time.sleep(0.3)  # let the cookie manager sync
        token = cookie_manager.get(cookie=REFRESH_COOKIE)
    if token and keeper.restore(token):
        auth.load_profile()
        return

    st.title("🏥 MedCRM")
    c1, c2, c3 = st.columns([1, 2, 1])
    with c2:
        with st.form("login"):
            st.subheader("Sign In")
            email = st.text_input("Email")
            pwd = st.text_input("Password", type="password")
            if st.form_submit_button("Login", type="primary"):
                error = auth.sign_in(email, pwd)
                if error:
                    st.error(error)
                else:
                    remember_login()
                    time.sleep(0.5)
                    st.rerun()


login_section()

if not auth.is_authenticated:
    st.stop()

remember_login()


# ---------------------------
# 3. KEEPALIVE & BACKGROUND REFRESH
# ---------------------------
@st.fragment(run_every=60)
def keepalive():
    if keeper.tick() is False:
        st.warning("Your session has expired. Please sign in again.")


def watch_browser():
    """Re-checks the session when the tab comes back or the network returns."""
    visibility = streamlit_js_eval(js_expressions="document.visibilityState", key="visibility")
    online = streamlit_js_eval(js_expressions="navigator.onLine", key="online")

    prev_visibility = st.session_state.get('last_visibility')
    prev_online = st.session_state.get('last_online')
    st.session_state.last_visibility = visibility
    st.session_state.last_online = online

    if prev_online is False and online is True:
        keeper.on_network_restored()
        crm.refresh_in_background()
    elif prev_visibility == "hidden" and visibility == "visible":
        keeper.on_visibility_regained()
        crm.refresh_in_background()


keepalive()
watch_browser()

if not state.loaded:
    with st.spinner("Loading data..."):
        if not crm.refresh_in_background():
            st.error("Could not load data. Please sign in again if this persists.")
    crm.load_profiles(auth.profile)


def saved(ok, what):
    if ok:
        st.success(f"{what} saved.")
    else:
        st.error(f"{what} was not saved. Showing the latest data from the server.")


# ---------------------------
# 4. MAIN APP LOGIC
# ---------------------------
profile = auth.profile
st.title("🏥 MedCRM")
st.caption(f"Welcome back, {profile.full_name if profile else 'there'}")

tab_names = ["📋 Dashboard", "🏥 Hospitals", "💲 Prices", "📅 Calendar", "⚙️ Settings"]
if auth.is_admin:
    tab_names.append("👥 Users")
tabs = st.tabs(tab_names)
tab_dash, tab_hosp, tab_price, tab_cal, tab_set = tabs[:5]
tab_users = tabs[5] if len(tabs) > 5 else None

# --- TAB 1: DASHBOARD ---
with tab_dash:
    time_range = st.radio("Range", list(views.TIME_RANGES), horizontal=True, label_visibility="collapsed")
    kpis = views.dashboard_kpis(state.hospitals, state.usage_records, time_range)

    d1, d2, d3, d4 = st.columns(4)
    d1.metric("Hospitals", kpis["total_hospitals"])
    d2.metric("Consumables Sold", kpis["consumable_sales"])
    d3.metric("Open Opportunities", kpis["open_opportunities"], help="Lead, Qualification, Trial and Negotiation")
    d4.metric("Active Trials", kpis["active_trials"])

    c_pipe, c_reg = st.columns(2)
    with c_pipe:
        st.markdown("#### 🧭 Pipeline")
        counts = views.pipeline_counts(state.hospitals)
        if counts:
            st.dataframe(pd.DataFrame({"Stage": list(counts), "Hospitals": list(counts.values())}), hide_index=True, use_container_width=True)
        else: st.info("No open pipeline.")
    with c_reg:
        st.markdown("#### 🗺️ Sales by Region")
        by_region = views.sales_by_region(state.usage_records, state.hospitals, time_range)
        if not by_region.empty:
            st.dataframe(by_region.rename("Quantity"), use_container_width=True)
        else: st.info("No sales in this range.")

    c_att, c_rec = st.columns(2)
    with c_att:
        st.markdown("#### ⚠️ Needs Attention")
        for h in views.attention_needed(state.hospitals):
            st.text(f"{h.name} (last visit: {h.last_visit})")
    with c_rec:
        st.markdown("#### 🕒 Recent Activity")
        names = {h.id: h.name for h in state.hospitals}
        for n in views.recent_notes(state.notes):
            st.text(f"{n.date[:10]} - {names.get(n.hospital_id, '?')}: {n.activity_type.value}")


def parse_day(value):
    parsed = parse_date(value)
    return parsed.date() if parsed else date.today()


def hospital_detail(h):
    st.markdown(f"### {h.name}")
    t_over, t_cont, t_notes, t_usage, t_eq = st.tabs(["Overview", "Contacts", "Notes", "Orders", "Equipment"])

    with t_over:
        with st.form(f"edit_hospital_{h.id}"):
            name = st.text_input("Name", h.name)
            address = st.text_input("Address", h.address)
            c1, c2, c3 = st.columns(3)
            region = c1.selectbox("Region", list(Region), index=list(Region).index(h.region), format_func=lambda r: r.value)
            level = c2.selectbox("Level", list(HospitalLevel), index=list(HospitalLevel).index(h.level), format_func=lambda l: l.value)
            stage = c3.selectbox("Stage", list(SalesStage), index=list(SalesStage).index(h.stage), format_func=lambda s: s.value)
            charge = st.number_input("Charge per use", value=float(h.charge_per_use or 0.0), min_value=0.0)
            remarks = st.text_area("Remarks", h.remarks)
            if st.form_submit_button("💾 Save"):
                try:
                    saved(crm.update_hospital(replace(h, name=name, address=address, region=region, level=level, stage=stage,
                                                      charge_per_use=charge or None, remarks=remarks)), "Hospital")
                except ValidationError as e:
                    st.error(str(e))

        st.markdown("#### 💲 Consumable Prices")
        with st.form(f"prices_{h.id}"):
            codes = views.consumable_codes()
            cols = st.columns(len(codes))
            prices = {code: cols[i].number_input(code, value=float(h.price_of(code) or 0.0), min_value=0.0, step=10.0)
                      for i, code in enumerate(codes)}
            if st.form_submit_button("💾 Save Prices"):
                ok = True
                for code, price in prices.items():
                    if price != (h.price_of(code) or 0.0):
                        ok = crm.set_consumable_price(h.id, code, price) and ok
                saved(ok, "Prices")

    with t_cont:
        for c in [c for c in state.contacts if c.hospital_id == h.id]:
            star = "⭐ " if c.is_key_decision_maker else ""
            with st.expander(f"{star}{c.name} · {c.role}"):
                with st.form(f"edit_contact_{c.id}"):
                    e1, e2 = st.columns(2)
                    ename = e1.text_input("Name", c.name)
                    erole = e2.text_input("Role", c.role)
                    eemail = e1.text_input("Email", c.email)
                    ephone = e2.text_input("Phone", c.phone)
                    ekey = st.checkbox("Key decision maker", c.is_key_decision_maker)
                    if st.form_submit_button("💾 Save"):
                        try:
                            saved(crm.update_contact(replace(c, name=ename, role=erole, email=eemail, phone=ephone,
                                                             is_key_decision_maker=ekey)), "Contact")
                        except ValidationError as e:
                            st.error(str(e))
        with st.form(f"new_contact_{h.id}", clear_on_submit=True):
            c1, c2 = st.columns(2)
            cname = c1.text_input("Name")
            crole = c2.text_input("Role")
            cemail = c1.text_input("Email")
            cphone = c2.text_input("Phone")
            ckey = st.checkbox("Key decision maker")
            if st.form_submit_button("Add Contact"):
                try:
                    if crm.create_contact(h.id, cname, crole, cemail, cphone, ckey) is None:
                        st.error("Contact was not saved.")
                except ValidationError as e:
                    st.error(str(e))

    with t_notes:
        with st.form(f"new_note_{h.id}", clear_on_submit=True):
            c1, c2, c3 = st.columns(3)
            ndate = c1.date_input("Date", date.today())
            ntype = c2.selectbox("Type", list(ActivityType), format_func=lambda a: a.value)
            nsent = c3.selectbox("Sentiment", [None] + list(Sentiment), format_func=lambda s: s.value.title() if s else "-")
            content = st.text_area("Content")
            next_step = st.text_input("Next step")
            if st.form_submit_button("Add Note"):
                try:
                    created = crm.create_note(h.id, content, ndate.isoformat(), profile.full_name if profile else "",
                                              activity_type=ntype, user_id=auth.user_id, next_step=next_step,
                                              sentiment=nsent)
                    if created is None:
                        st.error("Note was not saved.")
                except ValidationError as e:
                    st.error(str(e))
        for n in [n for n in state.notes if n.hospital_id == h.id]:
            c1, c2 = st.columns([6, 1])
            c1.markdown(f"**{n.date[:10]} · {n.activity_type.value}** ({n.author})  \n{n.content}")
            if c2.button("🗑️", key=f"del_note_{n.id}"):
                saved(crm.delete_note(n.id), "Deletion")
                st.rerun()
            with st.expander("✏️ Edit"):
                with st.form(f"edit_note_{n.id}"):
                    e1, e2, e3 = st.columns(3)
                    edate = e1.date_input("Date", parse_day(n.date))
                    etype = e2.selectbox("Type", list(ActivityType), index=list(ActivityType).index(n.activity_type),
                                         format_func=lambda a: a.value)
                    sentiments = [None] + list(Sentiment)
                    esent = e3.selectbox("Sentiment", sentiments, index=sentiments.index(n.sentiment),
                                         format_func=lambda s: s.value.title() if s else "-")
                    econtent = st.text_area("Content", n.content)
                    s1, s2 = st.columns(2)
                    estep = s1.text_input("Next step", n.next_step or "")
                    estep_date = s2.date_input("Next step date", parse_day(n.next_step_date) if n.next_step_date else None)
                    if st.form_submit_button("💾 Save"):
                        try:
                            saved(crm.update_note(replace(
                                n, date=edate.isoformat(), activity_type=etype, sentiment=esent, content=econtent,
                                next_step=estep or None,
                                next_step_date=estep_date.isoformat() if estep_date else None,
                            )), "Note")
                        except ValidationError as e:
                            st.error(str(e))

    with t_usage:
        records = [r for r in state.usage_records if r.hospital_id == h.id]
        if records:
            st.dataframe(pd.DataFrame([r.to_row() for r in records]).drop(columns=["id", "hospital_id"]), hide_index=True, use_container_width=True)
        for r in records:
            with st.expander(f"✏️ {r.date} · {r.product_code} × {r.quantity} ({r.type.value})"):
                with st.form(f"edit_usage_{r.id}"):
                    e1, e2, e3 = st.columns(3)
                    eqty = e1.number_input("Qty", min_value=1, value=max(r.quantity, 1), step=1)
                    edate = e2.date_input("Date", parse_day(r.date))
                    etype = e3.selectbox("Type", list(UsageType), index=list(UsageType).index(r.type), format_func=lambda u: u.value)
                    if st.form_submit_button("💾 Save"):
                        try:
                            saved(crm.update_usage_record(replace(r, quantity=int(eqty), date=edate.isoformat(), type=etype)), "Record")
                        except ValidationError as e:
                            st.error(str(e))
        with st.form(f"new_usage_{h.id}", clear_on_submit=True):
            c1, c2, c3, c4 = st.columns(4)
            code = c1.selectbox("Product", PRODUCT_CODES)
            qty = c2.number_input("Qty", min_value=1, value=1, step=1)
            udate = c3.date_input("Date", date.today())
            utype = c4.selectbox("Type", list(UsageType), format_func=lambda u: u.value)
            if st.form_submit_button("Add Record"):
                try:
                    if crm.create_usage_record(h.id, code, qty, udate.isoformat(), utype) is None:
                        st.error("Record was not saved.")
                except ValidationError as e:
                    st.error(str(e))

    with t_eq:
        for eq in h.installed_equipment:
            c1, c2 = st.columns([6, 1])
            c1.write(f"**{eq.product_code}** × {eq.quantity} · {eq.ownership.value} · installed {eq.install_date}")
            if c2.button("🗑️", key=f"del_eq_{eq.id}"):
                saved(crm.delete_equipment(eq.id), "Deletion")
                st.rerun()
            with st.expander("✏️ Edit"):
                with st.form(f"edit_eq_{eq.id}"):
                    e1, e2, e3 = st.columns(3)
                    eqty = e1.number_input("Qty", min_value=1, value=max(eq.quantity, 1), step=1)
                    edate = e2.date_input("Installed", parse_day(eq.install_date))
                    eown = e3.selectbox("Ownership", list(Ownership), index=list(Ownership).index(eq.ownership),
                                        format_func=lambda o: o.value)
                    if st.form_submit_button("💾 Save"):
                        try:
                            saved(crm.update_equipment(replace(eq, quantity=int(eqty), install_date=edate.isoformat(),
                                                               ownership=eown)), "Equipment")
                        except ValidationError as e:
                            st.error(str(e))
        with st.form(f"new_eq_{h.id}", clear_on_submit=True):
            c1, c2, c3, c4 = st.columns(4)
            code = c1.selectbox("Product", PRODUCT_CODES)
            qty = c2.number_input("Qty", min_value=1, value=1, step=1)
            idate = c3.date_input("Installed", date.today())
            own = c4.selectbox("Ownership", list(Ownership), format_func=lambda o: o.value)
            if st.form_submit_button("Add Equipment"):
                try:
                    if crm.add_equipment(h.id, code, qty, idate.isoformat(), own) is None:
                        st.error("Equipment was not saved.")
                except ValidationError as e:
                    st.error(str(e))


# --- TAB 2: HOSPITALS ---
with tab_hosp:
    with st.expander("➕ New Hospital"):
        with st.form("new_hospital", clear_on_submit=True):
            nm = st.text_input("Name")
            ad = st.text_input("Address")
            c1, c2, c3 = st.columns(3)
            rg = c1.selectbox("Region", list(Region), format_func=lambda r: r.value)
            lv = c2.selectbox("Level", list(HospitalLevel), format_func=lambda l: l.value)
            sg = c3.selectbox("Stage", list(SalesStage), format_func=lambda s: s.value)
            if st.form_submit_button("Create", type="primary"):
                try:
                    if crm.create_hospital(nm, rg, lv, sg, address=ad) is None:
                        st.error("Hospital was not saved.")
                    else:
                        st.success(f"Added {nm}")
                except ValidationError as e:
                    st.error(str(e))

    c1, c2, c3, c4 = st.columns([2, 1, 1, 1])
    search = c1.text_input("Search", placeholder="Name or region")
    stage_f = c2.selectbox("Stage", [views.ALL] + [s.value for s in SalesStage])
    region_f = c3.selectbox("Region", [views.ALL] + [r.value for r in Region])
    sort_cfg = views.load_sort_config(preferences)
    sort_keys = ["name", "region", "level", "stage", "last_visit"]
    sort_key = c4.selectbox("Sort by", ["-"] + sort_keys, index=(sort_keys.index(sort_cfg.key) + 1) if sort_cfg else 0)
    if sort_key == "-":
        views.save_sort_config(preferences, None)
    elif sort_cfg is None or sort_cfg.key != sort_key:
        views.save_sort_config(preferences, views.SortConfig(sort_key, "asc"))
    sort_cfg = views.load_sort_config(preferences)
    if sort_cfg and st.button("⇅ Flip order"):
        views.save_sort_config(preferences, views.toggle_sort(sort_cfg, sort_cfg.key))
        st.rerun()

    shown = views.sort_hospitals(views.filter_hospitals(state.hospitals, search, stage_f, region_f), sort_cfg)
    df = create_hospital_dataframe(shown)
    st.dataframe(df.drop(columns=["id"]), hide_index=True, use_container_width=True)

    if shown:
        selected = st.selectbox("Open hospital", shown, format_func=lambda h: h.name)
        hospital_detail(selected)
    else:
        st.info("No hospitals match.")

# --- TAB 3: PRICES ---
with tab_price:
    stats = views.price_stats(state.hospitals)
    if not stats.empty:
        st.markdown("#### 📊 Price Overview")
        st.dataframe(stats.rename(columns={"product_code": "Code", "product_name": "Product", "min": "Min", "max": "Max",
                                           "avg": "Average", "count": "Hospitals", "missing": "No Price"}),
                     hide_index=True, use_container_width=True)

    p1, p2, p3, p4 = st.columns([2, 1, 1, 1])
    p_search = p1.text_input("Search", placeholder="Hospital or product", key="price_search")
    p_region = p2.selectbox("Region", [views.ALL] + [r.value for r in Region], key="price_region")
    p_level = p3.selectbox("Level", [views.ALL] + [l.value for l in HospitalLevel], key="price_level")
    p_view = p4.radio("View", ["List", "Matrix"], horizontal=True)
    p_product = st.selectbox("Product", [views.ALL] + views.consumable_codes())

    price_sort = views.load_sort_config(preferences, views.PRICE_SORT_PREFERENCE)
    for col, key in zip(st.columns(len(views.PRICE_SORT_KEYS)), views.PRICE_SORT_KEYS):
        arrow = ""
        if price_sort and price_sort.key == key:
            arrow = " ↑" if price_sort.direction == "asc" else " ↓"
        if col.button(f"{key.title()}{arrow}", key=f"price_sort_{key}", use_container_width=True):
            views.save_sort_config(preferences, views.cycle_sort(price_sort, key), views.PRICE_SORT_PREFERENCE)
            st.rerun()

    if p_view == "Matrix":
        matrix = views.price_matrix(state.hospitals, p_search, p_region, p_level, price_sort, p_product)
        if matrix.empty: st.info("No prices recorded yet.")
        else: st.dataframe(matrix, hide_index=True, use_container_width=True)
    else:
        rows = views.sort_price_rows(
            views.filter_price_rows(views.price_rows(state.hospitals), p_search, p_region, p_level, p_product), price_sort)
        averages = dict(zip(stats["product_code"], stats["avg"])) if not stats.empty else {}
        if rows:
            st.dataframe(pd.DataFrame([{
                "Hospital": r.hospital_name,
                "Region": r.region.value,
                "Level": r.level.value,
                "Product": r.product_name,
                "Price": r.price,
                "vs Avg": views.price_status(r.price, averages.get(r.product_code)),
            } for r in rows]), hide_index=True, use_container_width=True)
        else:
            st.info("No prices match.")

# --- TAB 4: CALENDAR ---
with tab_cal:
    selected_user = views.ALL
    if auth.is_manager_or_admin and state.profiles:
        options = [views.ALL] + [p.id for p in state.profiles]
        labels = {p.id: p.full_name or p.email for p in state.profiles}
        selected_user = st.selectbox("Person", options, format_func=lambda i: "Everyone" if i == views.ALL else labels.get(i, i))
    events = views.calendar_events(state.notes, state.hospitals, profile, selected_user)
    day = st.date_input("Day", date.today())
    todays = views.events_on(events, day)
    if todays:
        st.dataframe(pd.DataFrame([e._asdict() for e in todays]).drop(columns=["id", "hospital_id", "user_id"]), hide_index=True, use_container_width=True)
    else:
        st.info("No activity on this day.")
    st.markdown("#### 🔜 Upcoming Next Steps")
    for n in views.upcoming_next_steps(state.notes):
        st.text(f"{n.next_step_date} - {n.next_step}")

# --- TAB 5: SETTINGS ---
with tab_set:
    st.subheader("👤 Profile")
    if profile:
        with st.form("profile_form"):
            full_name = st.text_input("Full name", profile.full_name)
            region = st.text_input("Region", profile.region or "")
            if st.form_submit_button("💾 Save Profile"):
                try:
                    auth.update_profile(full_name=full_name, region=region or None)
                    st.success("Profile saved!")
                except CRMError as e:
                    st.error(f"Error: {e}")

    st.divider()
    if st.button("🚪 Log Out", type="primary", use_container_width=True):
        sign_out()

# --- TAB 6: USERS (admins only) ---
if tab_users is not None:
    with tab_users:
        try:
            users = auth.list_users()
        except CRMError as e:
            st.error(f"Could not load users: {e}")
            users = []
        if users:
            st.dataframe(views.users_frame(users).drop(columns=["id"]), hide_index=True, use_container_width=True)

            st.subheader("✏️ Edit User")
            target = st.selectbox("User", users, format_func=lambda p: f"{p.full_name or p.email} ({p.role_type.value})")
            with st.form(f"edit_user_{target.id}"):
                e1, e2 = st.columns(2)
                e_name = e1.text_input("Full name", target.full_name)
                e_access = e2.selectbox("Access", list(RoleType), index=list(RoleType).index(target.role_type),
                                        format_func=lambda r: r.value)
                e_title = e1.text_input("Title", target.role)
                e_region = e2.text_input("Region", target.region or "")
                if st.form_submit_button("💾 Save User"):
                    try:
                        auth.update_user(target.id, full_name=e_name, role_type=e_access, role=e_title, region=e_region)
                        crm.load_profiles(auth.profile)
                        st.success("User saved!")
                        st.rerun()
                    except CRMError as e:
                        st.error(f"Error: {e}")
            if target.id != auth.user_id and st.button("🗑️ Delete Profile", key=f"del_user_{target.id}"):
                try:
                    auth.delete_user(target.id)
                    crm.load_profiles(auth.profile)
                    st.rerun()
                except CRMError as e:
                    st.error(f"Error: {e}")

        st.divider()
        st.subheader("➕ Add User")
        with st.form("add_user", clear_on_submit=True):
            u_email = st.text_input("Email")
            u_pass = st.text_input("Password", type="password")
            u_name = st.text_input("Full name")
            u_role = st.selectbox("Access", ["sales", "manager", "admin"])
            if st.form_submit_button("Create User"):
                error = auth.sign_up(u_email, u_pass, u_name, u_role)
                if error: st.error(error)
                else: st.success(f"User {u_email} created.")
