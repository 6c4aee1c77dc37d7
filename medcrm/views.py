from collections import namedtuple
from datetime import date, timedelta

import pandas as pd

from medcrm.helpers import (
    CONSUMABLE,
    LEVEL_ORDER,
    OPEN_STAGES,
    PIPELINE_ORDER,
    PRODUCTS,
    REGION_ORDER,
    STAGE_ORDER,
    days_since,
    parse_date,
)
from medcrm.models import NEVER, SalesStage, UsageType

SORT_PREFERENCE = "hospital_sort"
PRICE_SORT_PREFERENCE = "price_sort"
ALL = "All"
TIME_RANGES = {"all": None, "1y": 365, "90d": 90}

SortConfig = namedtuple("SortConfig", ["key", "direction"])
CalendarEvent = namedtuple(
    "CalendarEvent",
    ["id", "date", "hospital_id", "hospital_name", "activity_type", "content",
     "author", "user_id", "next_step", "next_step_date", "sentiment"],
)
PriceRow = namedtuple(
    "PriceRow",
    ["hospital_id", "hospital_name", "region", "level", "product_code", "product_name", "price"],
)

_ENUM_ORDERS = {"region": REGION_ORDER, "level": LEVEL_ORDER, "stage": STAGE_ORDER}


# ---------------------------
# HOSPITAL LIST
# ---------------------------
def load_sort_config(preferences, name=SORT_PREFERENCE):
    stored = preferences.get(name)
    if not stored:
        return None
    return SortConfig(stored["key"], stored["direction"])


def save_sort_config(preferences, sort_config, name=SORT_PREFERENCE):
    if sort_config is None:
        preferences.delete(name)
    else:
        preferences.set(name, dict(sort_config._asdict()))


def toggle_sort(current, key):
    """Clicking a column sorts ascending, clicking it again flips the direction."""
    if current is not None and current.key == key and current.direction == "asc":
        return SortConfig(key, "desc")
    return SortConfig(key, "asc")


def filter_hospitals(hospitals, search="", stage=ALL, region=ALL):
    term = (search or "").strip().lower()
    result = []
    for h in hospitals:
        if term and term not in h.name.lower() and term not in h.region.value.lower():
            continue
        if stage not in (None, ALL) and h.stage.value != getattr(stage, "value", stage):
            continue
        if region not in (None, ALL) and h.region.value != getattr(region, "value", region):
            continue
        result.append(h)
    return result


def sort_hospitals(hospitals, sort_config):
    if sort_config is None:
        return list(hospitals)
    key = sort_config.key
    order = _ENUM_ORDERS.get(key)
    if order is not None:
        sort_key = lambda h: order.get(getattr(h, key), 99)
    else:
        sort_key = lambda h: str(getattr(h, key) or "").lower()
    return sorted(hospitals, key=sort_key, reverse=sort_config.direction == "desc")


# ---------------------------
# DASHBOARD
# ---------------------------
def in_time_range(value, time_range, today):
    days = TIME_RANGES.get(time_range)
    if days is None:
        return True
    parsed = parse_date(value)
    return parsed is not None and parsed.date() >= today - timedelta(days=days)


def usage_frame(usage_records, hospitals=()):
    region_by_id = {h.id: h.region.value for h in hospitals}
    frame = pd.DataFrame(
        [{
            "hospital_id": r.hospital_id,
            "region": region_by_id.get(r.hospital_id, "Unknown"),
            "product_code": r.product_code,
            "quantity": r.quantity,
            "date": r.date,
            "type": r.type.value,
        } for r in usage_records],
        columns=["hospital_id", "region", "product_code", "quantity", "date", "type"],
    )
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce", utc=True).dt.tz_localize(None)
    return frame


def sales_frame(usage_records, hospitals=(), time_range="all", today=None):
    """Orders only (samples are not sales), limited to ``time_range``."""
    today = today or date.today()
    orders = [r for r in usage_records
              if r.type != UsageType.SAMPLE and in_time_range(r.date, time_range, today)]
    return usage_frame(orders, hospitals)


def pipeline_counts(hospitals):
    counts = {stage: 0 for stage in PIPELINE_ORDER}
    for h in hospitals:
        if h.stage in counts:
            counts[h.stage] += 1
    return {stage.value: n for stage, n in counts.items() if n > 0}


def dashboard_kpis(hospitals, usage_records, time_range="all", today=None):
    sales = sales_frame(usage_records, hospitals, time_range, today)
    return {
        "total_hospitals": len(hospitals),
        "consumable_sales": int(sales["quantity"].sum()) if not sales.empty else 0,
        "open_opportunities": sum(1 for h in hospitals if h.stage in OPEN_STAGES),
        "active_trials": sum(1 for h in hospitals if h.stage == SalesStage.TRIAL),
        "in_negotiation": sum(1 for h in hospitals if h.stage == SalesStage.NEGOTIATION),
    }


def sales_by_region(usage_records, hospitals, time_range="all", today=None):
    sales = sales_frame(usage_records, hospitals, time_range, today)
    if sales.empty:
        return pd.Series(dtype="int64")
    return sales.groupby("region")["quantity"].sum().sort_values(ascending=False)


def attention_needed(hospitals, today=None, days=60):
    """Hospitals never visited, or not visited for more than ``days`` days."""
    today = today or date.today()
    result = []
    for h in hospitals:
        if h.last_visit == NEVER:
            result.append(h)
            continue
        elapsed = days_since(h.last_visit, today)
        if elapsed is None or abs(elapsed) > days:
            result.append(h)
    return result


def recent_notes(notes, limit=5):
    dated = [n for n in notes if parse_date(n.date) is not None]
    return sorted(dated, key=lambda n: parse_date(n.date), reverse=True)[:limit]


# ---------------------------
# CALENDAR
# ---------------------------
def calendar_events(notes, hospitals, profile=None, selected_user_id=ALL):
    """
    One event per note, dated by the day of the activity.

    Sales users only see their own activity. Managers and admins see everyone,
    or one person when ``selected_user_id`` is set.
    """
    names = {h.id: h.name for h in hospitals}
    events = [
        CalendarEvent(
            id=n.id,
            date=(n.date or "")[:10],
            hospital_id=n.hospital_id,
            hospital_name=names.get(n.hospital_id, "Unknown hospital"),
            activity_type=n.activity_type.value,
            content=n.content,
            author=n.author,
            user_id=n.user_id,
            next_step=n.next_step,
            next_step_date=n.next_step_date,
            sentiment=n.sentiment.value if n.sentiment else None,
        )
        for n in notes
    ]
    if profile is None:
        return events
    if not profile.is_manager_or_admin:
        return [e for e in events if e.user_id == profile.id]
    if selected_user_id not in (None, ALL):
        return [e for e in events if e.user_id == selected_user_id]
    return events


def events_on(events, day):
    key = day.isoformat() if hasattr(day, "isoformat") else str(day)
    return [e for e in events if e.date == key]


def upcoming_next_steps(notes, today=None, days=14):
    today = today or date.today()
    horizon = today + timedelta(days=days)
    result = []
    for n in notes:
        due = parse_date(n.next_step_date)
        if n.next_step and due is not None and today <= due.date() <= horizon:
            result.append(n)
    return sorted(result, key=lambda n: parse_date(n.next_step_date))


# ---------------------------
# PRICE LIST
# ---------------------------
PRICE_SORT_KEYS = ("hospital", "region", "level", "price")
PRICE_STAT_COLUMNS = ["product_code", "product_name", "min", "max", "avg", "count", "missing"]


def cycle_sort(current, key):
    """Price list headers cycle ascending, descending, then unsorted."""
    if current is None or current.key != key:
        return SortConfig(key, "asc")
    if current.direction == "asc":
        return SortConfig(key, "desc")
    return None


def _same(member, wanted):
    return wanted in (None, ALL) or member.value == getattr(wanted, "value", wanted)


def consumable_codes():
    return [p.code for p in PRODUCTS if p.type == CONSUMABLE]


def price_rows(hospitals):
    """One row per hospital and consumable with a positive negotiated price."""
    names = {p.code: p.name for p in PRODUCTS}
    return [
        PriceRow(h.id, h.name, h.region, h.level, c.code, names.get(c.code, c.code), c.price)
        for h in hospitals
        for c in h.consumables
        if c.price > 0
    ]


def price_stats(hospitals):
    """
    Min, max, average and coverage of the negotiated price per consumable.

    Returns:
        pd.DataFrame: one row per product code; ``missing`` counts hospitals
        without a price for it.
    """
    frame = pd.DataFrame(price_rows(hospitals), columns=PriceRow._fields)
    if frame.empty:
        return pd.DataFrame(columns=PRICE_STAT_COLUMNS)
    stats = frame.groupby("product_code").agg(
        product_name=("product_name", "first"),
        min=("price", "min"),
        max=("price", "max"),
        avg=("price", "mean"),
        count=("price", "size"),
        priced=("hospital_id", "nunique"),
    )
    stats["avg"] = stats["avg"].apply(lambda v: int(v + 0.5))
    stats["missing"] = len(hospitals) - stats.pop("priced")
    return stats.reset_index()[PRICE_STAT_COLUMNS]


def price_status(price, average):
    """Flags a price more than 10% above or below the product average."""
    if not average:
        return "normal"
    threshold = average * 0.1
    if price > average + threshold:
        return "high"
    if price < average - threshold:
        return "low"
    return "normal"


def filter_price_rows(rows, search="", region=ALL, level=ALL, product_code=None):
    term = (search or "").strip().lower()
    result = []
    for r in rows:
        if term and not any(term in text.lower() for text in (r.hospital_name, r.product_code, r.product_name)):
            continue
        if not _same(r.region, region) or not _same(r.level, level):
            continue
        if product_code not in (None, ALL) and r.product_code != product_code:
            continue
        result.append(r)
    return result


def sort_price_rows(rows, sort_config):
    if sort_config is None:
        return list(rows)
    keys = {
        "hospital": lambda r: r.hospital_name.lower(),
        "region": lambda r: REGION_ORDER.get(r.region, 99),
        "level": lambda r: LEVEL_ORDER.get(r.level, 99),
        "price": lambda r: r.price,
    }
    return sorted(rows, key=keys[sort_config.key], reverse=sort_config.direction == "desc")


def price_matrix(hospitals, search="", region=ALL, level=ALL, sort_config=None, product_code=None):
    """
    Hospitals (rows) by consumable (columns) with the negotiated price in each cell.

    Only hospitals with at least one price are listed. Sorting by "price" uses
    ``product_code``; hospitals without that price sort as 0.
    """
    term = (search or "").strip().lower()
    priced = [
        h for h in hospitals
        if any(c.price > 0 for c in h.consumables)
        and (not term or term in h.name.lower())
        and _same(h.region, region) and _same(h.level, level)
    ]
    if sort_config is not None:
        keys = {
            "hospital": lambda h: h.name.lower(),
            "region": lambda h: REGION_ORDER.get(h.region, 99),
            "level": lambda h: LEVEL_ORDER.get(h.level, 99),
            "price": lambda h: h.price_of(product_code) or 0,
        }
        priced = sorted(priced, key=keys[sort_config.key], reverse=sort_config.direction == "desc")

    codes = [code for code in consumable_codes() if any(h.price_of(code) for h in hospitals)]
    rows = []
    for h in priced:
        row = {"Hospital": h.name, "Region": h.region.value, "Level": h.level.value}
        row.update({code: h.price_of(code) for code in codes})
        rows.append(row)
    return pd.DataFrame(rows, columns=["Hospital", "Region", "Level"] + codes)


# ---------------------------
# USERS
# ---------------------------
def users_frame(profiles):
    rows = [{
        "Name": p.full_name,
        "Email": p.email,
        "Access": p.role_type.value,
        "Title": p.role,
        "Region": p.region or "",
        "id": p.id,
    } for p in profiles]
    return pd.DataFrame(rows, columns=["Name", "Email", "Access", "Title", "Region", "id"])
