from collections import namedtuple
from datetime import date, datetime, timezone

import pandas as pd

from medcrm.models import NEVER, HospitalLevel, Region, SalesStage

# ---------------------------
# GLOBAL CONSTANTS
# ---------------------------
Product = namedtuple("Product", ["code", "name", "type", "description"])

EQUIPMENT = "Equipment"
CONSUMABLE = "Consumable"

PRODUCTS = [
    Product("MR810", "F&P 810 System", EQUIPMENT, "F&P 810 System"),
    Product("FP950", "F&P 950 System", EQUIPMENT, "F&P 950 System"),
    Product("AA001", "Optiflow Nasal Interface", CONSUMABLE, "F&P Optiflow Nasal Interface"),
    Product("AA031", "Optiflow Trace Nasal Interface", CONSUMABLE, "Optiflow Trace Nasal Interface with integrated CO2 sampling tube"),
    Product("AA400", "Optiflow Oxygen Kit AA400", CONSUMABLE, "Optiflow Oxygen Kit AA400"),
    Product("AA401", "Optiflow Oxygen Kit AA401", CONSUMABLE, "Optiflow Oxygen Kit AA401"),
]
PRODUCT_CODES = [p.code for p in PRODUCTS]

OPEN_STAGES = [SalesStage.LEAD, SalesStage.QUALIFICATION, SalesStage.TRIAL, SalesStage.NEGOTIATION]
PIPELINE_ORDER = OPEN_STAGES + [SalesStage.CLOSED_WON]

REGION_ORDER = {r: i for i, r in enumerate([Region.NORTH, Region.CENTRAL, Region.SOUTH, Region.EAST], 1)}
LEVEL_ORDER = {l: i for i, l in enumerate([HospitalLevel.MEDICAL_CENTER, HospitalLevel.REGIONAL, HospitalLevel.LOCAL], 1)}
STAGE_ORDER = {s: i for i, s in enumerate(list(SalesStage), 1)}


def get_product(code):
    for product in PRODUCTS:
        if product.code == code:
            return product
    return None


def parse_date(value):
    """
    Parses an ISO date or timestamp into a naive UTC datetime.

    Args:
        value: A date, datetime or ISO string. ``"Never"`` and blanks give None.

    Returns:
        datetime or None
    """
    if value is None or value == "" or value == NEVER:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_newer_visit(activity_date, last_visit):
    """True when ``activity_date`` is strictly later than ``last_visit`` ("Never" counts as the epoch)."""
    activity = parse_date(activity_date)
    if activity is None:
        return False
    previous = parse_date(last_visit)
    return previous is None or activity > previous


def days_since(value, today):
    parsed = parse_date(value)
    if parsed is None:
        return None
    return (today - parsed.date()).days


def create_hospital_dataframe(hospitals):
    """
    Creates the table shown on the hospital list.

    Args:
        hospitals (list): Hospital records, already filtered and sorted.

    Returns:
        pd.DataFrame: One row per hospital with display columns in a fixed order.
    """
    rows = [{
        "Name": h.name,
        "Region": h.region.value,
        "Level": h.level.value,
        "Stage": h.stage.value,
        "Last Visit": h.last_visit,
        "Equipment": sum(e.quantity for e in h.installed_equipment),
        "id": h.id,
    } for h in hospitals]
    column_order = ["Name", "Region", "Level", "Stage", "Last Visit", "Equipment", "id"]
    return pd.DataFrame(rows, columns=column_order)
