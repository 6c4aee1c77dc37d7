import logging
from dataclasses import replace

from medcrm.database import new_id
from medcrm.errors import CRMError, ValidationError
from medcrm.helpers import CONSUMABLE, PRODUCTS, is_newer_visit, parse_date
from medcrm.models import (
    ActivityType,
    Contact,
    Equipment,
    HospitalLevel,
    Note,
    Ownership,
    Region,
    SalesStage,
    Sentiment,
    UsageRecord,
    UsageType,
    parse_enum,
)

logger = logging.getLogger(__name__)

COLLECTIONS = ("hospitals", "contacts", "notes", "usage_records")
CONSUMABLE_CODES = {p.code for p in PRODUCTS if p.type == CONSUMABLE}


class AppState:
    """The one owner of the in-memory CRM collections.

    Screens read the lists directly; writes go through the named methods, which
    MutationCoordinator is the only caller of.
    """

    def __init__(self):
        self.hospitals = []
        self.contacts = []
        self.notes = []
        self.usage_records = []
        self.profiles = []
        self.loaded = False

    def load(self, hospitals, contacts, notes, usage_records):
        self.hospitals = list(hospitals)
        self.contacts = list(contacts)
        self.notes = list(notes)
        self.usage_records = list(usage_records)
        self.loaded = True

    def set_profiles(self, profiles):
        self.profiles = list(profiles)

    def snapshot(self):
        return {name: tuple(getattr(self, name)) for name in COLLECTIONS}

    def clear(self):
        self.__init__()

    # generic list operations keyed by ``id``
    def _replace(self, name, item):
        items = getattr(self, name)
        setattr(self, name, [item if existing.id == item.id else existing for existing in items])

    def _prepend(self, name, item):
        items = [existing for existing in getattr(self, name) if existing.id != item.id]
        setattr(self, name, [item] + items)

    def _remove(self, name, item_id):
        setattr(self, name, [existing for existing in getattr(self, name) if existing.id != item_id])

    def get_hospital(self, hospital_id):
        return next((h for h in self.hospitals if h.id == hospital_id), None)

    def hospital_for_equipment(self, equipment_id):
        for hospital in self.hospitals:
            if any(e.id == equipment_id for e in hospital.installed_equipment):
                return hospital
        return None

    def replace_hospital(self, hospital):
        self._replace("hospitals", hospital)

    def prepend_hospital(self, hospital):
        self._prepend("hospitals", hospital)

    def remove_hospital(self, hospital_id):
        self._remove("hospitals", hospital_id)

    def replace_contact(self, contact):
        self._replace("contacts", contact)

    def prepend_contact(self, contact):
        self._prepend("contacts", contact)

    def replace_note(self, note):
        self._replace("notes", note)

    def prepend_note(self, note):
        self._prepend("notes", note)

    def remove_note(self, note_id):
        self._remove("notes", note_id)

    def replace_usage_record(self, record):
        self._replace("usage_records", record)

    def prepend_usage_record(self, record):
        self._prepend("usage_records", record)


def _require(value, field_name):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required")
    return value.strip() if isinstance(value, str) else value


def _require_date(value, field_name):
    _require(value, field_name)
    try:
        parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is not a valid date: {value!r}")
    return value


def _require_quantity(value):
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"quantity must be a whole number, got {value!r}")
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    return quantity


class MutationCoordinator:
    """
    Applies user edits to AppState and the remote store.

    Updates and deletes are applied locally first; a failed remote write throws
    the optimistic state away by reloading everything. Creates wait for the
    server-confirmed record. Update/delete return True/False, creates return
    the record or None, so the UI can show "not saved".
    """

    def __init__(self, db, state=None):
        self.db = db
        self.state = state if state is not None else AppState()

    # ---------------------------
    # LOADING & RECONCILIATION
    # ---------------------------
    def reload(self):
        hospitals = self.db.fetch_hospitals()
        contacts = self.db.fetch_contacts()
        notes = self.db.fetch_notes()
        usage_records = self.db.fetch_usage_records()
        self.state.load(hospitals, contacts, notes, usage_records)
        return self.state

    def load_profiles(self, profile):
        """Profiles feed the calendar's user filter, which only managers and admins get."""
        if profile is None or not profile.is_manager_or_admin:
            self.state.set_profiles([])
            return []
        try:
            profiles = self.db.fetch_profiles()
        except CRMError as e:
            logger.error("Error loading profiles: %s", e)
            return self.state.profiles
        self.state.set_profiles(profiles)
        return profiles

    def refresh_in_background(self):
        try:
            self.reload()
            return True
        except Exception as e:
            logger.warning("Background refresh failed: %s", e)
            return False

    def _reconcile(self, action, error):
        logger.error("%s failed, reloading from the server: %s", action, error)
        try:
            self.reload()
        except CRMError as e:
            logger.error("Reload after failed %s also failed: %s", action, e)

    def _apply(self, action, write):
        try:
            write()
        except CRMError as e:
            self._reconcile(action, e)
            return False
        return True

    def _create(self, action, write):
        try:
            return write()
        except CRMError as e:
            logger.error("%s failed: %s", action, e)
            return None

    def _advance_last_visit(self, hospital_id, activity_date):
        self.db.sync_last_visit(hospital_id, activity_date)
        hospital = self.state.get_hospital(hospital_id)
        if hospital is not None and is_newer_visit(activity_date, hospital.last_visit):
            self.state.replace_hospital(replace(hospital, last_visit=activity_date))

    def _sync_equipment_flag(self, hospital_id, installed):
        try:
            self.db.set_equipment_flag(hospital_id, installed)
        except CRMError as e:
            logger.warning("Could not update equipment flag for hospital %s: %s", hospital_id, e)

    # ---------------------------
    # HOSPITALS
    # ---------------------------
    def create_hospital(self, name, region, level, stage=SalesStage.LEAD, address=""):
        name = _require(name, "name")
        region = parse_enum(Region, region, "region")
        level = parse_enum(HospitalLevel, level, "level")
        stage = parse_enum(SalesStage, stage, "stage")
        created = self._create("create hospital",
                               lambda: self.db.create_hospital(name, region, level, stage, address=address or ""))
        if created is not None:
            self.state.prepend_hospital(created)
        return created

    def update_hospital(self, hospital):
        _require(hospital.name, "name")
        self.state.replace_hospital(hospital)
        return self._apply("update hospital", lambda: self.db.update_hospital(hospital))

    def set_consumable_price(self, hospital_id, product_code, price):
        """Sets the negotiated price of a consumable; a price of 0 removes it."""
        hospital = self.state.get_hospital(hospital_id)
        if hospital is None:
            raise ValidationError(f"Unknown hospital: {hospital_id}")
        if product_code not in CONSUMABLE_CODES:
            raise ValidationError(f"Not a consumable: {product_code!r}")
        try:
            price = float(price or 0)
        except (TypeError, ValueError):
            raise ValidationError(f"price must be a number, got {price!r}")
        if price < 0:
            raise ValidationError("price cannot be negative")
        return self.update_hospital(hospital.with_price(product_code, price))

    def delete_hospital(self, hospital_id):
        self.state.remove_hospital(hospital_id)
        return self._apply("delete hospital", lambda: self.db.delete_hospital(hospital_id))

    # ---------------------------
    # CONTACTS
    # ---------------------------
    def create_contact(self, hospital_id, name, role="", email="", phone="", is_key_decision_maker=False):
        contact = Contact(
            id=new_id(),
            hospital_id=_require(hospital_id, "hospital"),
            name=_require(name, "name"),
            role=role or "",
            email=email or "",
            phone=phone or "",
            is_key_decision_maker=bool(is_key_decision_maker),
        )
        created = self._create("create contact", lambda: self.db.create_contact(contact))
        if created is not None:
            self.state.prepend_contact(created)
        return created

    def update_contact(self, contact):
        _require(contact.name, "name")
        self.state.replace_contact(contact)
        return self._apply("update contact", lambda: self.db.update_contact(contact))

    # ---------------------------
    # NOTES
    # ---------------------------
    def create_note(self, hospital_id, content, date, author, activity_type=ActivityType.NOTE,
                    user_id=None, next_step=None, next_step_date=None, sentiment=None,
                    tags=(), related_contact_ids=(), attendees=None):
        note = Note(
            id=new_id(),
            hospital_id=_require(hospital_id, "hospital"),
            content=_require(content, "content"),
            date=_require_date(date, "date"),
            author=author or "",
            activity_type=parse_enum(ActivityType, activity_type, "activity type"),
            next_step=next_step or None,
            next_step_date=_require_date(next_step_date, "next step date") if next_step_date else None,
            sentiment=parse_enum(Sentiment, sentiment, "sentiment") if sentiment else None,
            tags=tuple(tags or ()),
            related_contact_ids=tuple(related_contact_ids or ()),
            attendees=attendees or None,
            user_id=user_id,
        )
        created = self._create("create note", lambda: self.db.create_note(note))
        if created is not None:
            self.state.prepend_note(created)
            self._advance_last_visit(created.hospital_id, created.date)
        return created

    def update_note(self, note):
        _require(note.content, "content")
        _require_date(note.date, "date")
        self.state.replace_note(note)
        if not self._apply("update note", lambda: self.db.update_note(note)):
            return False
        self._advance_last_visit(note.hospital_id, note.date)
        return True

    def delete_note(self, note_id):
        self.state.remove_note(note_id)
        return self._apply("delete note", lambda: self.db.delete_note(note_id))

    # ---------------------------
    # USAGE RECORDS
    # ---------------------------
    def create_usage_record(self, hospital_id, product_code, quantity, date, type=UsageType.ORDER):
        record = UsageRecord(
            id=new_id(),
            hospital_id=_require(hospital_id, "hospital"),
            product_code=_require(product_code, "product"),
            quantity=_require_quantity(quantity),
            date=_require_date(date, "date"),
            type=parse_enum(UsageType, type, "type"),
        )
        created = self._create("create usage record", lambda: self.db.create_usage_record(record))
        if created is not None:
            self.state.prepend_usage_record(created)
        return created

    def update_usage_record(self, record):
        _require_quantity(record.quantity)
        self.state.replace_usage_record(record)
        return self._apply("update usage record", lambda: self.db.update_usage_record(record))

    # ---------------------------
    # INSTALLED EQUIPMENT
    # ---------------------------
    def add_equipment(self, hospital_id, product_code, quantity, install_date, ownership=Ownership.PURCHASE):
        if self.state.get_hospital(hospital_id) is None:
            raise ValidationError(f"Unknown hospital: {hospital_id}")
        equipment = Equipment(
            id=new_id(),
            hospital_id=hospital_id,
            product_code=_require(product_code, "product"),
            quantity=_require_quantity(quantity),
            install_date=_require_date(install_date, "install date"),
            ownership=parse_enum(Ownership, ownership, "ownership"),
        )
        created = self._create("add equipment", lambda: self.db.create_equipment(equipment))
        if created is None:
            return None
        hospital = self.state.get_hospital(hospital_id)
        if hospital is not None:
            was_installed = hospital.equipment_installed
            others = [e for e in hospital.installed_equipment if e.id != created.id]
            self.state.replace_hospital(hospital.with_equipment(others + [created]))
            if not was_installed:
                self._sync_equipment_flag(hospital_id, True)
        return created

    def update_equipment(self, equipment):
        _require_quantity(equipment.quantity)
        hospital = self.state.hospital_for_equipment(equipment.id)
        if hospital is not None:
            self.state.replace_hospital(hospital.with_equipment(
                equipment if e.id == equipment.id else e for e in hospital.installed_equipment
            ))
        return self._apply("update equipment", lambda: self.db.update_equipment(equipment))

    def delete_equipment(self, equipment_id):
        hospital = self.state.hospital_for_equipment(equipment_id)
        if hospital is not None:
            hospital = hospital.with_equipment(e for e in hospital.installed_equipment if e.id != equipment_id)
            self.state.replace_hospital(hospital)
        if not self._apply("delete equipment", lambda: self.db.delete_equipment(equipment_id)):
            return False
        if hospital is not None and not hospital.equipment_installed:
            self._sync_equipment_flag(hospital.id, False)
        return True
