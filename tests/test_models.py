import logging

import pytest

from medcrm.errors import ValidationError
from medcrm.models import (
    ConsumablePrice,
    Equipment,
    Hospital,
    HospitalLevel,
    Ownership,
    Region,
    SalesStage,
    parse_enum,
)


@pytest.mark.parametrize("text, expected", [
    ("MedicalCenter", HospitalLevel.MEDICAL_CENTER),
    ("medical_center", HospitalLevel.MEDICAL_CENTER),
    ("LocalCommunity", HospitalLevel.LOCAL),
    ("Local Community", HospitalLevel.LOCAL),
    ("LOCAL", HospitalLevel.LOCAL),
])
def test_level_spellings(text, expected):
    assert parse_enum(HospitalLevel, text) is expected


def test_stage_spellings():
    assert parse_enum(SalesStage, "ClosedWon") is SalesStage.CLOSED_WON
    assert parse_enum(SalesStage, "closed-lost") is SalesStage.CLOSED_LOST


def test_user_input_stays_strict():
    with pytest.raises(ValidationError):
        parse_enum(Ownership, "Rental")


def test_equipment_row_with_unknown_ownership_is_read(caplog):
    row = {"id": "eq-1", "hospital_id": "h1", "product_code": "MR810", "quantity": 3,
           "install_date": "2024-01-10", "ownership": "Rental"}
    with caplog.at_level(logging.WARNING, logger="medcrm.models"):
        equipment = Equipment.from_row(row)
    assert equipment.ownership is Ownership.PURCHASE
    assert "Rental" in caplog.text


def test_rows_from_older_client_map_to_members():
    equipment = Equipment.from_row({"id": "eq-1", "hospital_id": "h1", "product_code": "MR810",
                                    "quantity": 5, "install_date": "2023-08-15", "ownership": "借用"})
    assert equipment.ownership is Ownership.LOAN

    hospital = Hospital.from_row({"id": "h1", "name": "台大醫院", "region": "北區",
                                  "level": "醫學中心", "stage": "試用"}, [equipment])
    assert hospital.region is Region.NORTH
    assert hospital.level is HospitalLevel.MEDICAL_CENTER
    assert hospital.stage is SalesStage.TRIAL
    assert hospital.equipment_installed


def test_hospital_row_with_unknown_stage_falls_back_to_lead():
    hospital = Hospital.from_row({"id": "h1", "name": "X", "region": "North",
                                  "level": "Regional", "stage": "Paused"})
    assert hospital.stage is SalesStage.LEAD


def test_reload_survives_one_odd_equipment_row(crm, fake_client):
    hospital = crm.create_hospital("Taipei General", "North", "MedicalCenter", "ClosedWon")
    assert hospital.level is HospitalLevel.MEDICAL_CENTER
    fake_client.tables["installed_equipment"] = [
        {"id": "eq-1", "hospital_id": hospital.id, "product_code": "MR810", "quantity": 5,
         "install_date": "2023-08-15", "ownership": "Loan"},
        {"id": "eq-2", "hospital_id": hospital.id, "product_code": "FP950", "quantity": 1,
         "install_date": "2023-09-10", "ownership": "Borrowed"},
    ]

    assert crm.refresh_in_background() is True
    loaded = crm.state.get_hospital(hospital.id)
    assert [e.ownership for e in loaded.installed_equipment] == [Ownership.LOAN, Ownership.PURCHASE]


def test_consumables_read_from_priced_and_bare_entries():
    hospital = Hospital.from_row({"id": "h1", "name": "X", "region": "North", "level": "Regional", "stage": "Lead",
                                  "consumables": [{"code": "AA001", "price": 150}, "AA031", {"code": "AA400", "price": None}]})
    assert hospital.consumables == (ConsumablePrice("AA001", 150.0), ConsumablePrice("AA031"), ConsumablePrice("AA400"))
    assert hospital.price_of("AA001") == 150.0
    assert hospital.price_of("AA031") is None
    assert hospital.with_price("AA031", 60).to_row()["consumables"][-1] == {"code": "AA031", "price": 60.0}
