# Property API test suite: create under both listing policies, browse filters, ordering, edits, sold transition, delete.
from __future__ import annotations

from datetime import datetime, timezone
from typing import Tuple

from fastapi.testclient import TestClient

from estateconnect import models
from estateconnect.main import create_app
from estateconnect.routes.properties import calculate_expiry_date

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, make_settings

API = "/api"


# Helper: create a user and return (access_token, user JSON)
def signup(client: TestClient, email: str, role: str, name: str = "Test User") -> Tuple[str, dict]:
    r = client.post(f"{API}/signup", json={"email": email, "password": "changeme123", "name": name, "role": role})
    assert r.status_code == 201, r.text
    data = r.json()
    return data["accessToken"], data["user"]


# Helper: login and return (access_token, user JSON)
def login(client: TestClient, email: str, password: str) -> Tuple[str, dict]:
    r = client.post(f"{API}/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    data = r.json()
    return data["accessToken"], data["user"]


# Convenience header for authenticated requests
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# Helper: create a listing owned by the authenticated owner and return the property JSON
def create_property(client: TestClient, token: str, title: str = "Sunny Flat", **fields) -> dict:
    payload = {"title": title, "description": "Two rooms", "location": "Nairobi", "price": 120000, "type": "house"}
    payload.update(fields)
    r = client.post(f"{API}/properties", headers=auth_headers(token), json=payload)
    assert r.status_code == 201, r.text
    return r.json()["property"]


# Signup, login, create: the unfiltered listing shows the property with the signer as owner
def test_signup_login_create_shows_in_listing(any_client: TestClient):
    signup(any_client, "a@x.com", "owner")
    token, user = login(any_client, "a@x.com", "changeme123")
    prop = create_property(any_client, token, "T1", price=1000)

    listed = any_client.get(f"{API}/properties").json()["properties"]
    matches = [p for p in listed if p["id"] == prop["id"]]
    assert len(matches) == 1
    assert matches[0]["title"] == "T1"
    assert matches[0]["ownerId"] == user["id"]


# Owner creates a listing; owner fields are server-assigned and it reads back unchanged
def test_owner_creates_listing_in_review_mode(client: TestClient):
    token, owner = signup(client, "owner@example.com", "owner", name="Olive Owner")
    r = client.post(
        f"{API}/properties",
        headers=auth_headers(token),
        json={
            "title": "  Garden Villa ",
            "description": "Quiet street",
            "location": "Kampala",
            "price": 250000,
            "type": "villa",
            "bedrooms": 4,
            "bathrooms": 3,
            "area": 320.5,
            "images": ["/uploads/a.jpg"],
            "duration": "1week",
            "ownerId": "someone-else",
        },
    )
    assert r.status_code == 201, r.text
    data = r.json()
    prop = data["property"]
    assert data["message"] == "Property submitted successfully and is awaiting admin approval."
    assert prop["title"] == "Garden Villa"
    assert prop["ownerId"] == owner["id"]
    assert prop["ownerName"] == "Olive Owner"
    assert prop["ownerEmail"] == "owner@example.com"
    assert prop["status"] == "pending"
    assert prop["version"] == 1
    assert prop["expiryDate"] is not None
    assert prop["approvedAt"] is None

    r2 = client.get(f"{API}/properties/{prop['id']}")
    assert r2.status_code == 200
    fetched = r2.json()["property"]
    for key in ("id", "title", "description", "location", "price", "type", "bedrooms", "bathrooms", "area", "images", "status"):
        assert fetched[key] == prop[key]


# Owner verification and witness details from the listing form are stored and read back as sent
def test_verification_and_witness_round_trip(client: TestClient):
    token, _ = signup(client, "verified@example.com", "owner")
    verification = {"phone": "+250788000111", "idNumber": "1199880012345678", "idType": "national_id", "idImageUrl": "/uploads/id.jpg"}
    witness = {"name": "Wes Witness", "phone": "+250788000222", "relationship": "neighbour", "address": "KG 11 Ave"}
    prop = create_property(client, token, "Witnessed Plot", ownerVerification=verification, thirdPartyWitness=witness)
    assert prop["ownerVerification"] == verification
    assert prop["thirdPartyWitness"] == witness

    fetched = client.get(f"{API}/properties/{prop['id']}").json()["property"]
    assert fetched["ownerVerification"] == verification
    assert fetched["thirdPartyWitness"] == witness

    # The witness is optional and can be cleared later
    bare = create_property(client, token, "No Witness", ownerVerification=verification)
    assert bare["thirdPartyWitness"] is None
    r = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"thirdPartyWitness": None})
    assert r.status_code == 200, r.text
    assert r.json()["property"]["thirdPartyWitness"] is None
    assert r.json()["property"]["ownerVerification"] == verification


# Initial status follows the configured listing policy
def test_initial_status_follows_policy(any_client: TestClient):
    auto = any_client.app.state.ctx.settings.auto_approve_listings
    token, _ = signup(any_client, "policy@example.com", "owner")

    r = any_client.post(
        f"{API}/properties",
        headers=auth_headers(token),
        json={"title": "Policy House", "location": "Accra", "price": 1000},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    if auto:
        assert data["property"]["status"] == "approved"
        assert data["message"] == "Property listed successfully and is now visible to customers!"
    else:
        assert data["property"]["status"] == "pending"
        assert "awaiting admin approval" in data["message"]

    # Admins are told about every new listing regardless of policy
    admin_token, _ = login(any_client, ADMIN_EMAIL, ADMIN_PASSWORD)
    notes = any_client.get(f"{API}/notifications", headers=auth_headers(admin_token)).json()["notifications"]
    assert [n["type"] for n in notes] == ["property_listed"]
    assert notes[0]["propertyId"] == data["property"]["id"]


# Only owners may create listings
def test_create_requires_owner_role(client: TestClient):
    customer_token, _ = signup(client, "cust@example.com", "customer")
    r = client.post(f"{API}/properties", headers=auth_headers(customer_token), json={"title": "Nope", "price": 1})
    assert r.status_code == 403

    anon = client.post(f"{API}/properties", json={"title": "Nope", "price": 1})
    assert anon.status_code == 401

    list_before = client.get(f"{API}/properties").json()["properties"]
    assert list_before == []


# Payload validation errors render as 400 with an error body
def test_create_validation_errors(client: TestClient):
    token, _ = signup(client, "val@example.com", "owner")
    r = client.post(f"{API}/properties", headers=auth_headers(token), json={"title": "   ", "price": 10})
    assert r.status_code == 400
    assert "error" in r.json()

    r2 = client.post(f"{API}/properties", headers=auth_headers(token), json={"title": "Negative", "price": -5})
    assert r2.status_code == 400


# Browse filters: location substring (case-insensitive), exact status/type, inclusive price bounds
def test_list_filters(auto_client: TestClient):
    token, _ = signup(auto_client, "filters@example.com", "owner")
    create_property(auto_client, token, "Cheap Flat", location="Nairobi West", price=100, type="apartment")
    create_property(auto_client, token, "Mid House", location="Mombasa", price=500, type="house")
    create_property(auto_client, token, "Big Villa", location="nairobi hills", price=900, type="villa")

    def titles(**params) -> set:
        r = auto_client.get(f"{API}/properties", params=params)
        assert r.status_code == 200, r.text
        return {p["title"] for p in r.json()["properties"]}

    assert titles(location="NAIROBI") == {"Cheap Flat", "Big Villa"}
    assert titles(type="house") == {"Mid House"}
    assert titles(minPrice=500) == {"Mid House", "Big Villa"}
    assert titles(maxPrice=500) == {"Cheap Flat", "Mid House"}
    assert titles(minPrice=100, maxPrice=100) == {"Cheap Flat"}
    assert titles(status="approved") == {"Cheap Flat", "Mid House", "Big Villa"}
    assert titles(status="pending") == set()
    assert titles(location="nairobi", type="villa", maxPrice=1000) == {"Big Villa"}


# Listing is newest first
def test_list_orders_newest_first(client: TestClient):
    token, _ = signup(client, "order@example.com", "owner")
    for title in ("First", "Second", "Third"):
        create_property(client, token, title)

    r = client.get(f"{API}/properties")
    assert [p["title"] for p in r.json()["properties"]] == ["Third", "Second", "First"]


# Rows missing a title are skipped by the listing and counted by the debug dump
def test_partial_rows_are_skipped(client: TestClient):
    token, owner = signup(client, "partial@example.com", "owner")
    create_property(client, token, "Complete")

    db = client.app.state.ctx.session_factory()
    try:
        db.add(models.Property(owner_id=owner["id"], title="", price=1, status="pending"))
        db.commit()
    finally:
        db.close()

    listed = client.get(f"{API}/properties").json()["properties"]
    assert [p["title"] for p in listed] == ["Complete"]

    dump = client.get(f"{API}/debug/properties").json()
    assert dump["totalItems"] == 2
    assert dump["validProperties"] == 1
    assert sorted(item["hasTitle"] for item in dump["items"]) == [False, True]


# Unknown ids are 404
def test_get_unknown_property_is_404(client: TestClient):
    r = client.get(f"{API}/properties/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"error": "Property not found"}


# Owner and admin may edit; other owners may not; server-assigned fields are ignored
def test_update_authorization_and_merge(client: TestClient):
    token, owner = signup(client, "editor@example.com", "owner")
    other_token, _ = signup(client, "intruder@example.com", "owner")
    prop = create_property(client, token, "Original", bedrooms=2)

    denied = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(other_token), json={"title": "Hijacked"})
    assert denied.status_code == 403

    r = client.put(
        f"{API}/properties/{prop['id']}",
        headers=auth_headers(token),
        json={"title": "Renamed", "bedrooms": None, "ownerId": "someone-else", "createdAt": "2000-01-01T00:00:00Z"},
    )
    assert r.status_code == 200, r.text
    updated = r.json()["property"]
    assert updated["title"] == "Renamed"
    assert updated["bedrooms"] is None
    assert updated["description"] == prop["description"]
    assert updated["ownerId"] == owner["id"]
    assert updated["createdAt"] == prop["createdAt"]
    assert updated["version"] == 2

    admin_token, _ = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    r2 = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(admin_token), json={"price": 99})
    assert r2.status_code == 200
    assert r2.json()["property"]["price"] == 99


# A stale version in the patch is rejected and nothing is written
def test_update_with_stale_version_conflicts(client: TestClient):
    token, _ = signup(client, "cas@example.com", "owner")
    prop = create_property(client, token, "Versioned")

    ok = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"title": "V2", "version": 1})
    assert ok.status_code == 200
    assert ok.json()["property"]["version"] == 2

    stale = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"title": "V3", "version": 1})
    assert stale.status_code == 409
    assert client.get(f"{API}/properties/{prop['id']}").json()["property"]["title"] == "V2"


# Status cannot be forced through an edit; only "sold" is accepted
def test_status_edit_only_allows_sold(client: TestClient):
    token, _ = signup(client, "status@example.com", "owner")
    prop = create_property(client, token, "Pending One")

    forced = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"status": "approved"})
    assert forced.status_code == 400

    too_early = client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"status": "sold"})
    assert too_early.status_code == 400
    assert client.get(f"{API}/properties/{prop['id']}").json()["property"]["status"] == "pending"


# The owner marks an approved listing as sold; an admin cannot
def test_owner_marks_approved_listing_sold(auto_client: TestClient):
    token, _ = signup(auto_client, "seller@example.com", "owner")
    prop = create_property(auto_client, token, "For Sale")
    assert prop["status"] == "approved"

    admin_token, _ = login(auto_client, ADMIN_EMAIL, ADMIN_PASSWORD)
    by_admin = auto_client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(admin_token), json={"status": "sold"})
    assert by_admin.status_code == 403

    r = auto_client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"status": "sold"})
    assert r.status_code == 200, r.text
    assert r.json()["property"]["status"] == "sold"


# Delete by a stranger is refused; delete by the owner removes the listing
def test_delete_property(client: TestClient):
    token, _ = signup(client, "remover@example.com", "owner")
    other_token, _ = signup(client, "stranger@example.com", "customer")
    prop = create_property(client, token, "Short Lived")

    denied = client.delete(f"{API}/properties/{prop['id']}", headers=auth_headers(other_token))
    assert denied.status_code == 403

    r = client.delete(f"{API}/properties/{prop['id']}", headers=auth_headers(token))
    assert r.status_code == 200
    assert r.json() == {"message": "Property deleted successfully"}
    assert client.get(f"{API}/properties/{prop['id']}").status_code == 404

    again = client.delete(f"{API}/properties/{prop['id']}", headers=auth_headers(token))
    assert again.status_code == 404


# Admins may remove any listing
def test_admin_deletes_any_listing(client: TestClient):
    token, _ = signup(client, "listed@example.com", "owner")
    prop = create_property(client, token, "Spam Listing")
    admin_token, _ = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    r = client.delete(f"{API}/properties/{prop['id']}", headers=auth_headers(admin_token))
    assert r.status_code == 200


# Debug dump counts listings per status
def test_debug_dump_counts(auto_client: TestClient):
    token, _ = signup(auto_client, "debug@example.com", "owner")
    prop = create_property(auto_client, token, "D" * 200)
    auto_client.put(f"{API}/properties/{prop['id']}", headers=auth_headers(token), json={"status": "sold"})
    create_property(auto_client, token, "Live")

    r = auto_client.get(f"{API}/debug/properties")
    assert r.status_code == 200
    data = r.json()
    assert data["totalItems"] == 2
    assert data["validProperties"] == 2
    assert data["approvedCount"] == 1
    assert data["soldCount"] == 1
    assert data["pendingCount"] == 0
    assert data["rejectedCount"] == 0
    assert [item["index"] for item in data["items"]] == [0, 1]
    assert all(len(item["preview"]) <= 150 for item in data["items"])


# The debug router is not mounted when disabled
def test_debug_endpoint_can_be_disabled(tmp_path):
    with TestClient(create_app(make_settings(tmp_path, debug_endpoints=False))) as c:
        assert c.get(f"{API}/debug/properties").status_code == 404


# Expiry dates: fixed day offsets and calendar months clamped to month end
def test_calculate_expiry_date():
    start = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert calculate_expiry_date("1day", start) == datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)
    assert calculate_expiry_date("1week", start) == datetime(2026, 2, 7, 12, 0, tzinfo=timezone.utc)
    assert calculate_expiry_date("1month", start) == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)
    assert calculate_expiry_date("2months", start) == datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
    assert calculate_expiry_date("3months", datetime(2025, 11, 30, tzinfo=timezone.utc)) == datetime(
        2026, 2, 28, tzinfo=timezone.utc
    )


# Unknown or missing durations fall back to one month
def test_calculate_expiry_date_defaults_to_one_month():
    start = datetime(2026, 3, 15, tzinfo=timezone.utc)
    expected = datetime(2026, 4, 15, tzinfo=timezone.utc)
    assert calculate_expiry_date(None, start) == expected
    assert calculate_expiry_date("forever", start) == expected
