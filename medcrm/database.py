import logging
import uuid
from contextlib import contextmanager

from medcrm.errors import CRMError, RemoteError, ValidationError, classify
from medcrm.helpers import is_newer_visit
from medcrm.models import (
    NEVER,
    Contact,
    Equipment,
    Hospital,
    Note,
    Profile,
    UsageRecord,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"full_name", "region", "avatar_url", "email", "role_type", "role"}


@contextmanager
def translate_errors():
    """Re-raises raw Supabase/PostgREST exceptions as AuthExpiredError or RemoteError."""
    try:
        yield
    except CRMError:
        raise
    except Exception as e:
        raise classify(e) from e


def new_id():
    return str(uuid.uuid4())


def _first(response, what):
    data = getattr(response, "data", None) or []
    if not data:
        raise RemoteError(f"{what} not found", code="PGRST116")
    return data[0]


class CRMDatabase:
    """
    Table access for the CRM, one method per remote operation.

    Every method runs through the ResilientCaller, so a stale token gets one
    refresh-and-retry. Inserts are upserts on a client-generated ``id`` which
    makes a retried create land on the same row.
    """

    def __init__(self, client, caller):
        self.client = client
        self.caller = caller

    def _call(self, label, fn, max_retries=None):
        def operation():
            with translate_errors():
                return fn()
        operation.__name__ = label
        return self.caller.call(operation, max_retries=max_retries, label=label)

    def _upsert(self, table, row):
        response = self.client.table(table).upsert(row).execute()
        data = getattr(response, "data", None) or []
        # some projects return minimal representation; fall back to what was sent
        return data[0] if data else row

    def _update(self, table, row_id, changes):
        response = self.client.table(table).update(changes).eq("id", row_id).execute()
        return _first(response, f"{table} row {row_id}")

    def _delete(self, table, row_id):
        self.client.table(table).delete().eq("id", row_id).execute()
        return True

    # ---------------------------
    # HOSPITALS
    # ---------------------------
    def fetch_hospitals(self):
        def fetch():
            rows = self.client.table("hospitals").select("*").order("created_at", desc=True).execute().data or []
            equipment_rows = self.client.table("installed_equipment").select("*").execute().data or []
            by_hospital = {}
            for row in equipment_rows:
                by_hospital.setdefault(row["hospital_id"], []).append(Equipment.from_row(row))
            return [Hospital.from_row(r, by_hospital.get(r["id"], ())) for r in rows]
        return self._call("fetch_hospitals", fetch)

    def create_hospital(self, name, region, level, stage, address="", hospital_id=None):
        hospital = Hospital(
            id=hospital_id or new_id(),
            name=name,
            region=region,
            level=level,
            stage=stage,
            address=address,
            last_visit=NEVER,
        )
        row = self._call("create_hospital", lambda: self._upsert("hospitals", hospital.to_row()))
        return Hospital.from_row(row)

    def update_hospital(self, hospital):
        row = hospital.to_row()
        row.pop("id")
        self._call("update_hospital", lambda: self._update("hospitals", hospital.id, row))
        return True

    def delete_hospital(self, hospital_id):
        return self._call("delete_hospital", lambda: self._delete("hospitals", hospital_id))

    def get_last_visit(self, hospital_id):
        def fetch():
            response = self.client.table("hospitals").select("last_visit").eq("id", hospital_id).limit(1).execute()
            return _first(response, f"hospital {hospital_id}").get("last_visit") or NEVER
        return self._call("get_last_visit", fetch)

    def set_last_visit(self, hospital_id, last_visit):
        self._call("set_last_visit", lambda: self._update("hospitals", hospital_id, {"last_visit": last_visit}))
        return True

    def set_equipment_flag(self, hospital_id, installed):
        self._call("set_equipment_flag",
                   lambda: self._update("hospitals", hospital_id, {"equipment_installed": bool(installed)}))
        return True

    def sync_last_visit(self, hospital_id, activity_date):
        """
        Advances the stored last visit of a hospital to ``activity_date`` if it is newer.

        Best effort: the last visit is derived from notes, so a failure here is
        logged and swallowed.

        Returns:
            str or None: the new last-visit value, or None when nothing changed.
        """
        try:
            current = self.get_last_visit(hospital_id)
            if not is_newer_visit(activity_date, current):
                return None
            self.set_last_visit(hospital_id, activity_date)
            return activity_date
        except CRMError as e:
            logger.warning("Could not sync last visit for hospital %s: %s", hospital_id, e)
            return None

    # ---------------------------
    # CONTACTS
    # ---------------------------
    def fetch_contacts(self):
        def fetch():
            rows = self.client.table("contacts").select("*").order("created_at", desc=True).execute().data or []
            return [Contact.from_row(r) for r in rows]
        return self._call("fetch_contacts", fetch)

    def create_contact(self, contact):
        row = self._call("create_contact", lambda: self._upsert("contacts", contact.to_row()))
        return Contact.from_row(row)

    def update_contact(self, contact):
        row = contact.to_row()
        row.pop("id")
        self._call("update_contact", lambda: self._update("contacts", contact.id, row))
        return True

    # ---------------------------
    # NOTES
    # ---------------------------
    def fetch_notes(self):
        def fetch():
            rows = self.client.table("notes").select("*").order("created_at", desc=True).execute().data or []
            return [Note.from_row(r) for r in rows]
        return self._call("fetch_notes", fetch)

    def create_note(self, note):
        row = self._call("create_note", lambda: self._upsert("notes", note.to_row()))
        return Note.from_row(row)

    def update_note(self, note):
        row = note.to_row()
        for key in ("id", "hospital_id", "user_id"):
            row.pop(key)
        self._call("update_note", lambda: self._update("notes", note.id, row))
        return True

    def delete_note(self, note_id):
        return self._call("delete_note", lambda: self._delete("notes", note_id))

    # ---------------------------
    # USAGE RECORDS
    # ---------------------------
    def fetch_usage_records(self):
        def fetch():
            rows = self.client.table("usage_records").select("*").order("created_at", desc=True).execute().data or []
            return [UsageRecord.from_row(r) for r in rows]
        return self._call("fetch_usage_records", fetch)

    def create_usage_record(self, record):
        row = self._call("create_usage_record", lambda: self._upsert("usage_records", record.to_row()))
        return UsageRecord.from_row(row)

    def update_usage_record(self, record):
        row = record.to_row()
        for key in ("id", "hospital_id"):
            row.pop(key)
        self._call("update_usage_record", lambda: self._update("usage_records", record.id, row))
        return True

    # ---------------------------
    # INSTALLED EQUIPMENT
    # ---------------------------
    def create_equipment(self, equipment):
        row = self._call("create_equipment", lambda: self._upsert("installed_equipment", equipment.to_row()))
        return Equipment.from_row(row)

    def update_equipment(self, equipment):
        row = equipment.to_row()
        for key in ("id", "hospital_id"):
            row.pop(key)
        self._call("update_equipment", lambda: self._update("installed_equipment", equipment.id, row))
        return True

    def delete_equipment(self, equipment_id):
        return self._call("delete_equipment", lambda: self._delete("installed_equipment", equipment_id))

    # ---------------------------
    # PROFILES
    # ---------------------------
    def fetch_profiles(self):
        def fetch():
            rows = (self.client.table("profiles")
                    .select("id, full_name, email, role_type, role, region")
                    .order("full_name")
                    .execute().data or [])
            return [Profile.from_row(r) for r in rows]
        return self._call("fetch_profiles", fetch)

    def fetch_profile(self, user_id):
        def fetch():
            response = self.client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
            return Profile.from_row(_first(response, f"profile {user_id}"))
        return self._call("fetch_profile", fetch)

    def update_profile(self, user_id, changes):
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update profile fields: {', '.join(sorted(unknown))}")
        payload = {k: getattr(v, "value", v) for k, v in changes.items()}
        self._call("update_profile", lambda: self._update("profiles", user_id, payload))
        return True

    def delete_profile(self, user_id):
        """Removes the profile row only; the auth user is left for the backend admin."""
        return self._call("delete_profile", lambda: self._delete("profiles", user_id))
