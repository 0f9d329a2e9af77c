"""
Botanica Backend — HTTP Route Tests
=====================================

What:  End-to-end requests through the app (middleware, dependencies,
       exception handlers) with the database dependency pointed at SQLite.

What we test:
    ✅ Public catalog: listing, pagination header, detail, 404 envelope
    ✅ Admin gate: 401 without a session, 403 for non-admins, 200 for admins
    ✅ Sign-in callback for admins and non-admins; sign-out revokes
    ✅ Plant create/edit/delete and inventory adjustments over HTTP
    ✅ Image upload and serving
    ✅ Request IDs, health, rate limiting
"""

import pytest

from botanica.config import settings
from botanica.services.auth_service import auth_service
from botanica.services.identity_base import IdentityProvider, IdentityUser
from botanica.services.session_context import session_context

ADMIN_EMAIL = "curator@example.com"
VIEWER_EMAIL = "visitor@example.com"


class StubProvider(IdentityProvider):
    def __init__(self, email: str):
        self.email = email

    def authorization_url(self, state: str) -> str:
        return f"https://idp.test/auth?state={state}"

    async def exchange_code(self, code: str) -> str:
        return "access-token"

    async def fetch_user(self, access_token: str) -> IdentityUser:
        return IdentityUser(email=self.email)


async def start_login(client) -> str:
    response = await client.get("/api/admin/login")
    assert response.status_code == 200
    return response.json()["state"]


async def create_plant(client, headers, **fields):
    fields.setdefault("common_name", "Tulsi")
    response = await client.post("/api/admin/plants", json=fields, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["plant"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "accessible"


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated(self, client):
        response = await client.get("/api/categories")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_value_echoed(self, client):
        response = await client.get("/api/categories", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_error_body_carries_id(self, client):
        response = await client.get(
            "/api/plants/00000000-0000-0000-0000-000000000000", headers={"X-Request-ID": "trace-43"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert response.json()["request_id"] == "trace-43"


class TestAdminGate:

    @pytest.mark.asyncio
    async def test_no_session(self, client):
        response = await client.get("/api/admin/dashboard")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["details"]["login_url"] == "/api/admin/login"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get("/api/admin/dashboard", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client, viewer_headers):
        response = await client.get("/api/admin/dashboard", headers=viewer_headers)
        assert response.status_code == 403
        assert response.json()["message"].startswith(f"Access denied. {VIEWER_EMAIL}")

    @pytest.mark.asyncio
    async def test_non_admin_can_read_own_session(self, client, viewer_headers):
        response = await client.get("/api/admin/me", headers=viewer_headers)
        assert response.status_code == 200
        assert response.json() == {
            "email": VIEWER_EMAIL,
            "name": "Test User",
            "picture": None,
            "is_admin": False,
        }

    @pytest.mark.asyncio
    async def test_admin_dashboard(self, client, admin_headers):
        response = await client.get("/api/admin/dashboard", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["totals"]["total_plants"] == 0

    @pytest.mark.asyncio
    async def test_dashboard_row_shows_low_stock(self, client, admin_headers):
        await create_plant(client, admin_headers, common_name="Ashwagandha", quantity=3, minimum_stock=5)

        response = await client.get("/api/admin/dashboard", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        [row] = body["plants"]
        assert row["common_name"] == "Ashwagandha"
        assert row["status"] == "low_stock"
        assert row["status_label"] == "Low Stock"
        assert row["shortage"] == 2
        assert body["totals"]["low_stock"] == 1
        assert body["totals"]["out_of_stock"] == 0


class TestSignIn:

    @pytest.mark.asyncio
    async def test_login_returns_consent_url(self, client):
        response = await client.get("/api/admin/login")
        assert response.status_code == 200
        assert response.json()["authorization_url"].startswith(settings.oauth_authorize_url)

    @pytest.mark.asyncio
    async def test_login_redirect(self, client):
        response = await client.get("/api/admin/login", params={"redirect": "true"})
        assert response.status_code == 307
        assert response.headers["location"].startswith(settings.oauth_authorize_url)

    @pytest.mark.asyncio
    async def test_callback_admin(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(auth_service, "provider", StubProvider(ADMIN_EMAIL))
        state = await start_login(client)

        response = await client.get("/api/admin/callback", params={"code": "abc", "state": state})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["redirect_to"] == "/admin/dashboard"
        assert body["message"] == f"Welcome back, {ADMIN_EMAIL}!"

        dashboard = await client.get(
            "/api/admin/dashboard", headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert dashboard.status_code == 200

    @pytest.mark.asyncio
    async def test_callback_non_admin(self, client, monkeypatch):
        monkeypatch.setattr(auth_service, "provider", StubProvider("stranger@example.com"))
        state = await start_login(client)

        response = await client.get("/api/admin/callback", params={"code": "abc", "state": state})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["is_admin"] is False
        assert body["redirect_to"] == "/"
        assert body["message"].startswith("Access denied. stranger@example.com is not a registered admin.")

    @pytest.mark.asyncio
    async def test_login_sets_state_cookie(self, client):
        response = await client.get("/api/admin/login")
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"botanica_oauth_state={session_context.state_nonce(response.json()['state'])}")
        assert "HttpOnly" in cookie
        assert "Path=/api/admin" in cookie

    @pytest.mark.asyncio
    async def test_callback_state_replay_rejected(self, client, monkeypatch):
        monkeypatch.setattr(auth_service, "provider", StubProvider(ADMIN_EMAIL))
        state = await start_login(client)

        first = await client.get("/api/admin/callback", params={"code": "mine", "state": state})
        assert first.status_code == 200

        client.cookies.set("botanica_oauth_state", session_context.state_nonce(state))
        second = await client.get("/api/admin/callback", params={"code": "other", "state": state})
        assert second.status_code == 401

    @pytest.mark.asyncio
    async def test_callback_without_login_cookie(self, client, monkeypatch):
        monkeypatch.setattr(auth_service, "provider", StubProvider(ADMIN_EMAIL))
        response = await client.get(
            "/api/admin/callback", params={"code": "abc", "state": session_context.issue_state()}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_callback_state_from_another_login(self, client, monkeypatch):
        monkeypatch.setattr(auth_service, "provider", StubProvider(ADMIN_EMAIL))
        await start_login(client)
        foreign_state = session_context.issue_state()

        response = await client.get(
            "/api/admin/callback", params={"code": "abc", "state": foreign_state}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_callback_bad_state(self, client):
        response = await client.get("/api/admin/callback", params={"code": "abc", "state": "forged"})
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication failed. Please try again."

    @pytest.mark.asyncio
    async def test_callback_provider_error_param(self, client):
        response = await client.get("/api/admin/callback", params={"error": "access_denied"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes(self, client, admin_headers):
        response = await client.post("/api/admin/logout", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Signed out."

        again = await client.get("/api/admin/dashboard", headers=admin_headers)
        assert again.status_code == 401


class TestCatalogRoutes:

    @pytest.mark.asyncio
    async def test_listing_and_detail(self, client, admin_headers):
        created = await create_plant(
            client, admin_headers, common_name="Holy Basil", description="<p>Sacred <b>herb</b></p>", quantity=3
        )

        listing = await client.get("/api/plants", params={"q": "basil"})
        assert listing.status_code == 200
        assert listing.headers["X-Total-Count"] == "1"
        card = listing.json()["plants"][0]
        assert card["description_text"] == "Sacred herb"
        assert card["status_label"] == "Low Stock"

        detail = await client.get(f"/api/plants/{created['id']}")
        assert detail.status_code == 200
        assert detail.json()["shortage"] == 2

    @pytest.mark.asyncio
    async def test_invalid_sort(self, client):
        response = await client.get("/api/plants", params={"sort": "random"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_featured(self, client, admin_headers):
        await create_plant(client, admin_headers, common_name="Star", is_featured=True)
        await create_plant(client, admin_headers, common_name="Plain")
        response = await client.get("/api/plants/featured")
        assert [p["common_name"] for p in response.json()] == ["Star"]

    @pytest.mark.asyncio
    async def test_categories(self, client, admin_headers):
        for name in ("Trees", "Herbs"):
            response = await client.post("/api/admin/categories", json={"name": name}, headers=admin_headers)
            assert response.status_code == 201
        duplicate = await client.post("/api/admin/categories", json={"name": "Herbs"}, headers=admin_headers)
        assert duplicate.status_code == 409

        response = await client.get("/api/categories")
        assert [c["name"] for c in response.json()] == ["Herbs", "Trees"]


class TestAdminPlantRoutes:

    @pytest.mark.asyncio
    async def test_create_duplicate_conflict(self, client, admin_headers):
        await create_plant(client, admin_headers, common_name="Neem")
        response = await client.post("/api/admin/plants", json={"common_name": "Neem"}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["message"] == "A plant with this name already exists."

    @pytest.mark.asyncio
    async def test_create_text_too_long(self, client, admin_headers):
        response = await client.post(
            "/api/admin/plants",
            json={"common_name": "Verbose", "uses": "u" * 2010},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Uses is 10 characters too long. Please shorten the text."

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, client, admin_headers):
        created = await create_plant(client, admin_headers, common_name="Aloe", quantity=10)

        payload = {"common_name": "Aloe Vera", "quantity": 0, "minimum_stock": 5}
        edited = await client.put(f"/api/admin/plants/{created['id']}", json=payload, headers=admin_headers)
        assert edited.status_code == 200
        assert edited.json()["plant"]["status"] == "out_of_stock"

        deleted = await client.delete(f"/api/admin/plants/{created['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Plant deleted successfully."

        missing = await client.get(f"/api/plants/{created['id']}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_inventory_adjust_and_history(self, client, admin_headers):
        created = await create_plant(client, admin_headers, common_name="Mint", quantity=1)

        adjusted = await client.post(
            f"/api/admin/plants/{created['id']}/inventory",
            json={"change_type": "restock", "quantity_change": 9},
            headers=admin_headers,
        )
        assert adjusted.status_code == 201
        assert adjusted.json()["status"] == "available"

        too_many = await client.post(
            f"/api/admin/plants/{created['id']}/inventory",
            json={"change_type": "sale", "quantity_change": -50},
            headers=admin_headers,
        )
        assert too_many.status_code == 400

        history = await client.get(f"/api/admin/plants/{created['id']}/inventory", headers=admin_headers)
        assert [e["change_type"] for e in history.json()] == ["restock", "initial"]

        report = await client.get("/api/admin/inventory", headers=admin_headers)
        assert report.json()["stats"]["total_quantity"] == 10


class TestImageRoutes:

    @pytest.mark.asyncio
    async def test_upload_and_serve(self, client, admin_headers, png_bytes):
        response = await client.post(
            "/api/admin/images",
            files={"file": ("leaf.png", png_bytes, "image/png")},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["width"] == 1200
        assert body["url"].startswith("http://test/api/files/plant-images/plants/")

        served = await client.get(body["url"].replace("http://test", ""))
        assert served.status_code == 200
        assert served.headers["content-type"] == "image/jpeg"

        removed = await client.delete("/api/admin/images", params={"url": body["url"]}, headers=admin_headers)
        assert removed.json()["message"] == "Image removed."

    @pytest.mark.asyncio
    async def test_bad_type(self, client, admin_headers):
        response = await client.post(
            "/api/admin/images",
            files={"file": ("anim.gif", b"GIF89a....", "image/gif")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid file type. Only JPEG, PNG, and WebP are allowed."

    @pytest.mark.asyncio
    async def test_upload_requires_admin(self, client, viewer_headers, png_bytes):
        response = await client.post(
            "/api/admin/images",
            files={"file": ("leaf.png", png_bytes, "image/png")},
            headers=viewer_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_foreign_url(self, client, admin_headers):
        response = await client.delete(
            "/api/admin/images", params={"url": "https://elsewhere.test/x.jpg"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid image URL format"

    @pytest.mark.asyncio
    async def test_serve_traversal_rejected(self, client):
        response = await client.get("/api/files/plant-images/..%2F..%2Fetc%2Fpasswd")
        assert response.status_code == 404


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limit_exceeded(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)

        for _ in range(2):
            assert (await client.get("/api/categories")).status_code == 200
        blocked = await client.get("/api/categories")

        assert blocked.status_code == 429
        assert blocked.json()["error"] == "rate_limit_exceeded"
        assert int(blocked.headers["Retry-After"]) > 0

        # Health probes are never limited
        assert (await client.get("/health")).status_code == 200
