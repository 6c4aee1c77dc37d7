import random
import sys
from datetime import date, timedelta

from supabase import create_client

from medcrm.config import configure_logging, load_settings
from medcrm.database import CRMDatabase
from medcrm.errors import ConfigError
from medcrm.helpers import PRODUCTS, EQUIPMENT, CONSUMABLE
from medcrm.models import ActivityType, HospitalLevel, Ownership, Region, SalesStage, UsageType
from medcrm.remote import ResilientCaller
from medcrm.session import SessionKeeper
from medcrm.store import MutationCoordinator

DEMO_HOSPITALS = [
    ("Taipei General", Region.NORTH, HospitalLevel.REGIONAL, SalesStage.LEAD),
    ("St. Mary General Hospital", Region.NORTH, HospitalLevel.MEDICAL_CENTER, SalesStage.TRIAL),
    ("Metro Central Hospital", Region.CENTRAL, HospitalLevel.MEDICAL_CENTER, SalesStage.NEGOTIATION),
    ("West End Clinic", Region.SOUTH, HospitalLevel.LOCAL, SalesStage.QUALIFICATION),
    ("Great Oak Medical Center", Region.SOUTH, HospitalLevel.REGIONAL, SalesStage.CLOSED_WON),
    ("Pine Valley Health", Region.EAST, HospitalLevel.LOCAL, SalesStage.LEAD),
]


def seed(crm, author, user_id=None, today=None):
    """Creates demo hospitals with a few notes, orders and installed systems."""
    today = today or date.today()
    equipment = [p.code for p in PRODUCTS if p.type == EQUIPMENT]
    consumables = [p.code for p in PRODUCTS if p.type == CONSUMABLE]
    crm.reload()
    existing = {h.name for h in crm.state.hospitals}

    created = 0
    for name, region, level, stage in DEMO_HOSPITALS:
        if name in existing:
            print(f"Skipping {name}, already present")
            continue
        hospital = crm.create_hospital(name, region, level, stage)
        if hospital is None:
            print(f"Could not create {name}")
            continue
        created += 1
        print(f"Created demo hospital: {name}")

        for _ in range(random.randint(1, 3)):
            day = today - timedelta(days=random.randint(1, 120))
            crm.create_note(hospital.id, "Demo follow-up", day.isoformat(), author,
                            activity_type=random.choice(list(ActivityType)), user_id=user_id)
        for _ in range(random.randint(0, 4)):
            day = today - timedelta(days=random.randint(1, 365))
            crm.create_usage_record(hospital.id, random.choice(consumables), random.randint(1, 50),
                                    day.isoformat(), random.choice(list(UsageType)))
        if stage in (SalesStage.TRIAL, SalesStage.CLOSED_WON):
            crm.add_equipment(hospital.id, random.choice(equipment), random.randint(1, 10),
                              (today - timedelta(days=90)).isoformat(), random.choice(list(Ownership)))
    return created


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("usage: python seed_demo.py EMAIL PASSWORD")
        sys.exit(2)
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error loading secrets: {e}")
        sys.exit(1)
    configure_logging(settings.log_level)

    client = create_client(settings.supabase_url, settings.supabase_key)
    response = client.auth.sign_in_with_password({"email": sys.argv[1], "password": sys.argv[2]})
    keeper = SessionKeeper.from_settings(client, settings)
    keeper.adopt(response.session)
    db = CRMDatabase(client, ResilientCaller.from_settings(keeper, settings))
    count = seed(MutationCoordinator(db), author=sys.argv[1], user_id=keeper.user_id)
    print(f"Seeding complete: {count} hospital(s) created.")
