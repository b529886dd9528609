"""End-to-end tenancy scenarios against a temporary SQLite database."""

from __future__ import annotations

from helpers import bearer, onboard, register, superadmin_token

# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------


def test_register_then_me_has_no_tenant(client):
    token = register(client, "user@example.com")["token"]
    resp = client.get("/api/auth/me", headers=bearer(token))
    assert resp.status_code == 200
    assert resp.json()["authenticated"] is True
    assert resp.json()["user"]["organisation_id"] is None


def test_create_organisation_issues_new_token(client, codec):
    old_token = register(client, "user@example.com")["token"]

    resp = client.post(
        "/api/organizations", json={"organisation_name": "Acme Realty"}, headers=bearer(old_token)
    )

    assert resp.status_code == 201
    data = resp.json()
    org_id = data["organization"]["id"]
    assert data["user"]["organisation_id"] == org_id
    assert data["redirectTo"] == "/dashboard"
    assert "token=" in resp.headers["set-cookie"]
    assert codec.verify(data["token"]).organisation_id == org_id
    stale = codec.verify(old_token)
    assert stale is not None
    assert stale.organisation_id is None


def test_second_organisation_is_refused(client):
    token = onboard(client, "user@example.com", "Acme")
    resp = client.post("/api/organizations", json={"organisation_name": "Other"}, headers=bearer(token))
    assert resp.status_code == 400
    assert resp.json() == {"error": "User already belongs to an organization"}


def test_duplicate_organisation_name_is_refused(client):
    onboard(client, "a@example.com", "Acme")
    token = register(client, "b@example.com")["token"]
    resp = client.post("/api/organizations", json={"organisation_name": "Acme"}, headers=bearer(token))
    assert resp.status_code == 400


def test_tenantless_user_sees_no_rows_and_cannot_create(client):
    owner = onboard(client, "owner@example.com", "Acme")
    client.post("/api/contacts", json={"name": "Jane"}, headers=bearer(owner))
    newcomer = register(client, "new@example.com")["token"]

    listed = client.get("/api/contacts", headers=bearer(newcomer))
    created = client.post("/api/contacts", json={"name": "Eve"}, headers=bearer(newcomer))

    assert listed.status_code == 200
    assert listed.json() == {"contacts": []}
    assert created.status_code == 403
    assert created.json() == {"error": "User does not belong to an organization"}


# ---------------------------------------------------------------------------
# Gate behaviour through the full stack
# ---------------------------------------------------------------------------


def test_protected_api_without_token(client):
    resp = client.get("/api/contacts")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}


def test_protected_api_with_bad_token(client):
    resp = client.get("/api/contacts", headers=bearer("not.a.token"))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


def test_ui_route_redirects_to_login(client):
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "/login"


def test_ui_route_with_bad_cookie_clears_it(client):
    client.cookies.set("token", "not.a.token")
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.headers["location"] == "/login"
    assert "max-age=0" in resp.headers["set-cookie"].lower()


def test_ui_route_without_tenant_redirects_to_onboarding(client):
    token = register(client, "user@example.com")["token"]
    resp = client.get("/dashboard", headers=bearer(token), follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "/onboarding/create-organization"


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


def test_cross_tenant_property_is_forbidden(client):
    token_a = onboard(client, "a@example.com", "Tenant A")
    token_b = onboard(client, "b@example.com", "Tenant B")
    prop = client.post("/api/properties", json={"name": "A House"}, headers=bearer(token_a)).json()

    get_b = client.get(f"/api/properties/{prop['id']}", headers=bearer(token_b))
    put_b = client.put(f"/api/properties/{prop['id']}", json={"name": "Mine"}, headers=bearer(token_b))
    list_b = client.get("/api/properties", headers=bearer(token_b))

    assert get_b.status_code == 403
    assert "property" not in get_b.json()
    assert put_b.status_code == 403
    assert list_b.json() == {"properties": []}
    assert client.get(f"/api/properties/{prop['id']}", headers=bearer(token_a)).json()["property"]["name"] == "A House"


def test_cannot_create_in_foreign_tenant(client, codec):
    token_a = onboard(client, "a@example.com", "Tenant A")
    org_b = codec.verify(onboard(client, "b@example.com", "Tenant B")).organisation_id
    resp = client.post("/api/contacts", json={"name": "Sneaky", "organisation_id": org_b}, headers=bearer(token_a))
    assert resp.status_code == 403


def test_owner_must_belong_to_tenant(client):
    token_a = onboard(client, "a@example.com", "Tenant A")
    token_b = onboard(client, "b@example.com", "Tenant B")
    contact_b = client.post("/api/contacts", json={"name": "Bob"}, headers=bearer(token_b)).json()
    resp = client.post(
        "/api/properties", json={"name": "House", "owner_id": contact_b["id"]}, headers=bearer(token_a)
    )
    assert resp.status_code == 400


def test_superadmin_sees_every_tenant(client, codec):
    token_a = onboard(client, "a@example.com", "Tenant A")
    token_b = onboard(client, "b@example.com", "Tenant B")
    client.post("/api/contacts", json={"name": "Alice"}, headers=bearer(token_a))
    client.post("/api/contacts", json={"name": "Bob"}, headers=bearer(token_b))
    root = superadmin_token(codec)

    contacts = client.get("/api/contacts", headers=bearer(root)).json()["contacts"]
    orgs = client.get("/api/organizations", headers=bearer(root)).json()["organizations"]

    assert {c["name"] for c in contacts} == {"Alice", "Bob"}
    assert {o["organisation_name"] for o in orgs} == {"Tenant A", "Tenant B"}


def test_member_sees_only_own_organisation(client):
    onboard(client, "a@example.com", "Tenant A")
    token_b = onboard(client, "b@example.com", "Tenant B")
    orgs = client.get("/api/organizations", headers=bearer(token_b)).json()["organizations"]
    assert [o["organisation_name"] for o in orgs] == ["Tenant B"]


# ---------------------------------------------------------------------------
# Delete guards
# ---------------------------------------------------------------------------


def test_contact_with_property_cannot_be_deleted(client):
    token = onboard(client, "a@example.com", "Acme")
    contact = client.post("/api/contacts", json={"name": "Owner"}, headers=bearer(token)).json()
    client.post("/api/properties", json={"name": "House", "owner_id": contact["id"]}, headers=bearer(token))

    resp = client.delete(f"/api/contacts/{contact['id']}", headers=bearer(token))

    assert resp.status_code == 400
    assert resp.json()["propertyCount"] == 1
    assert client.get(f"/api/contacts/{contact['id']}", headers=bearer(token)).status_code == 200


def test_contact_without_property_can_be_deleted(client):
    token = onboard(client, "a@example.com", "Acme")
    contact = client.post("/api/contacts", json={"name": "Loner"}, headers=bearer(token)).json()
    assert client.delete(f"/api/contacts/{contact['id']}", headers=bearer(token)).status_code == 204
    assert client.get(f"/api/contacts/{contact['id']}", headers=bearer(token)).status_code == 404


def test_property_with_deal_cannot_be_deleted(client):
    token = onboard(client, "a@example.com", "Acme")
    prop = client.post("/api/properties", json={"name": "House"}, headers=bearer(token)).json()
    client.post("/api/deals", json={"name": "Sale", "property_id": prop["id"]}, headers=bearer(token))

    resp = client.delete(f"/api/properties/{prop['id']}", headers=bearer(token))

    assert resp.status_code == 400
    assert resp.json()["dealCount"] == 1
