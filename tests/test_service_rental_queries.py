"""
Read side of the rental engine: single lookups, cursor pagination and the
per-client and per-vehicle histories.
"""

import pytest

from conftest import ACTIVE_CPF, INACTIVE_CPF

CNPJ = "12345678000195"


@pytest.fixture
def rentals(service, make_payload):
    """Three rentals on three vehicles, returned in creation order."""
    service.clients.register_client({"tax_id": CNPJ, "full_name": "Empresa Teste"})
    ids = []
    for plate, client_id, start, end in [
        ("TST1234", ACTIVE_CPF, "20/12/2024", "27/12/2024"),
        ("BRA2E19", CNPJ, "05/01/2025", "10/01/2025"),
        ("QWE4R56", ACTIVE_CPF, "02/01/2025", "04/01/2025"),
    ]:
        result = service.create_rental(
            make_payload(plate=plate, clientId=client_id, startDate=start, endDate=end))
        assert result["success"], result
        ids.append(result["id"])
    return ids


# ---------- get ----------

def test_get_returns_stored_record(service, rentals):
    result = service.get_rental(rentals[0])

    assert result["success"] is True
    doc = result["rental"]
    assert doc["id"] == rentals[0]
    assert doc["start_date"] == "2024-12-20"
    assert doc["end_date"] == "2024-12-27"
    assert doc["status"] == "active"
    assert doc["plate"] == "TST1234"


def test_get_is_idempotent(service, rentals):
    assert service.get_rental(rentals[1]) == service.get_rental(rentals[1])


def test_get_missing(service):
    result = service.get_rental("nope")
    assert result["success"] is False
    assert result["code"] == "RENTAL_NOT_FOUND"


@pytest.mark.parametrize("rid", ["", "   ", None, "x" * 101])
def test_get_rejects_bad_ids(service, rid):
    result = service.get_rental(rid)
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == "id"


# ---------- list ----------

def test_list_newest_first_with_display_dates(service, rentals):
    result = service.list_rentals()

    assert result["success"] is True
    assert [r["id"] for r in result["rentals"]] == list(reversed(rentals))
    assert result["total"] == 3
    assert result["pagination"] == {"has_more": False, "next_cursor": None}

    oldest = result["rentals"][-1]
    assert oldest["start_date"] == "20/12/2024"
    assert oldest["end_date"] == "27/12/2024"
    # first clock tick is 12:00:01 UTC, shown in Sao Paulo time
    assert oldest["created_at"] == "01/12/2024 09:00"


def test_list_cursor_walks_every_page_once(service, rentals):
    first = service.list_rentals(limit=2)
    assert [r["id"] for r in first["rentals"]] == [rentals[2], rentals[1]]
    assert first["pagination"] == {"has_more": True, "next_cursor": rentals[1]}

    second = service.list_rentals(limit=2, cursor=first["pagination"]["next_cursor"])
    assert [r["id"] for r in second["rentals"]] == [rentals[0]]
    assert second["total"] == 1
    assert second["pagination"] == {"has_more": False, "next_cursor": None}


def test_list_page_exactly_full_has_no_more(service, rentals):
    result = service.list_rentals(limit=3)
    assert result["total"] == 3
    assert result["pagination"]["has_more"] is False


def test_list_empty_store(service):
    result = service.list_rentals()
    assert result == {
        "success": True,
        "rentals": [],
        "total": 0,
        "pagination": {"has_more": False, "next_cursor": None},
    }


def test_list_limit_accepts_query_strings_and_is_capped(service, rentals):
    assert service.list_rentals(limit="1")["total"] == 1
    assert service.list_rentals(limit=1000)["total"] == 3


@pytest.mark.parametrize("limit", [0, -1, "abc", True, "1.5"])
def test_list_rejects_bad_limit(service, limit):
    result = service.list_rentals(limit=limit)
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == "limit"


def test_list_rejects_unknown_cursor(service, rentals):
    result = service.list_rentals(cursor="not-a-rental")
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == "cursor"


def test_list_filters(service, rentals):
    service.update_rental(rentals[0], {"status": "completed"})

    active = service.list_rentals(filters={"status": "ativa"})
    assert {r["id"] for r in active["rentals"]} == {rentals[1], rentals[2]}

    by_client = service.list_rentals(filters={"clientId": "088.326.614-89"})
    assert {r["id"] for r in by_client["rentals"]} == {rentals[0], rentals[2]}

    both = service.list_rentals(filters={"client_id": ACTIVE_CPF, "status": "completed"})
    assert [r["id"] for r in both["rentals"]] == [rentals[0]]


@pytest.mark.parametrize("filters, field", [
    ({"plate": "TST1234"}, "filters"),
    (["status"], "filters"),
    ({"status": "returned"}, "status"),
    ({"clientId": "123"}, "clientId"),
])
def test_list_rejects_bad_filters(service, filters, field):
    result = service.list_rentals(filters=filters)
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == field


# ---------- histories ----------

def test_client_history_ordered_by_start_date(service, rentals):
    result = service.client_history("088.326.614-89")

    assert result["success"] is True
    assert result["client_id"] == ACTIVE_CPF
    assert result["total"] == 2
    assert [r["id"] for r in result["rentals"]] == [rentals[2], rentals[0]]
    assert result["rentals"][0]["start_date"] == "02/01/2025"


def test_client_history_includes_closed_rentals(service, rentals):
    service.update_rental(rentals[0], {"status": "canceled"})
    statuses = {r["status"] for r in service.client_history(ACTIVE_CPF)["rentals"]}
    assert statuses == {"active", "canceled"}


def test_client_without_rentals_has_empty_history(service, rentals):
    result = service.client_history(INACTIVE_CPF)
    assert result["success"] is True
    assert result["rentals"] == []
    assert result["total"] == 0


def test_client_history_rejects_malformed_tax_id(service):
    result = service.client_history("123")
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == "clientId"


def test_vehicle_history(service, seeded, make_payload, rentals):
    service.update_rental(rentals[0], {"status": "completed"})
    again = service.create_rental(make_payload(startDate="01/02/2025", endDate="03/02/2025"))
    assert again["success"]

    result = service.vehicle_history("tst-1234")

    assert result["success"] is True
    assert result["plate"] == "TST1234"
    assert result["vehicle_id"] == "CHASSI0001"
    assert [r["id"] for r in result["rentals"]] == [again["id"], rentals[0]]
    assert result["total"] == 2


def test_vehicle_history_follows_the_vehicle_after_a_plate_change(service, seeded, rentals):
    seeded.update("vehicles", "CHASSI0001", {"plate": "NEW1A23"})

    result = service.vehicle_history("NEW1A23")

    assert [r["id"] for r in result["rentals"]] == [rentals[0]]
    assert result["rentals"][0]["plate"] == "TST1234"


def test_vehicle_history_unknown_plate(service):
    assert service.vehicle_history("ZZZ9999")["code"] == "VEHICLE_NOT_FOUND"


def test_vehicle_history_malformed_plate(service):
    result = service.vehicle_history("12")
    assert result["code"] == "VALIDATION_ERROR"
    assert result["field"] == "plate"
