import sys

from supabase import create_client

from medcrm.config import configure_logging, load_settings
from medcrm.errors import ConfigError, classify

TABLES = {
    "hospitals": ["id", "name", "region", "level", "stage", "equipment_installed", "last_visit"],
    "contacts": ["id", "hospital_id", "name", "is_key_decision_maker"],
    "notes": ["id", "hospital_id", "content", "activity_date", "activity_type", "author_name", "user_id"],
    "usage_records": ["id", "hospital_id", "product_code", "quantity", "date", "type"],
    "installed_equipment": ["id", "hospital_id", "product_code", "install_date", "quantity", "ownership"],
    "profiles": ["id", "email", "full_name", "role_type"],
}


def check(client):
    """Reads one row per table and reports missing columns. Returns the number of problems."""
    problems = 0
    for table, columns in TABLES.items():
        try:
            res = client.table(table).select("*").limit(1).execute()
        except Exception as e:
            print(f"FAILURE: {table}: {classify(e)}")
            problems += 1
            continue
        if not res.data:
            print(f"No rows in {table}; columns not checked.")
            continue
        missing = [c for c in columns if c not in res.data[0]]
        if missing:
            print(f"FAILURE: {table} is missing {', '.join(missing)}")
            problems += 1
        else:
            print(f"SUCCESS: {table}")
    return problems


if __name__ == "__main__":
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error loading secrets: {e}")
        sys.exit(1)
    configure_logging(settings.log_level)
    supabase = create_client(settings.supabase_url, settings.supabase_key)
    sys.exit(1 if check(supabase) else 0)
