from __future__ import annotations

import asyncio
import base64
import json
from io import BytesIO

from PIL import Image


def create_code(client, **body):
    payload = {"name": "My QR", "content_type": "url", "content": "example.com"}
    payload.update(body)
    response = client.post("/api/qr-codes", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def parse_events(text):
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


# -------------------------------------------------------
# Health / auth
# -------------------------------------------------------
def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get("/health/db").json()["database"] == "ok"


def test_signup_login_logout(client):
    credentials = {"email": "Someone@Example.com", "password": "hunter22"}

    assert client.post("/auth/signup", json=credentials).status_code == 201
    assert client.post("/auth/signup", json=credentials).status_code == 409
    assert client.get("/auth/me").json()["email"] == "someone@example.com"

    assert client.post("/auth/logout").status_code == 204
    client.cookies.clear()
    assert client.get("/auth/me").status_code == 401

    bad = client.post("/auth/login", json={**credentials, "password": "wrong-one"})
    assert bad.status_code == 401
    assert client.post("/auth/login", json=credentials).status_code == 200
    assert client.get("/auth/me").status_code == 200


def test_dashboard_api_requires_session(client):
    assert client.get("/api/qr-codes").status_code == 401
    assert client.get("/dashboard").status_code == 401


# -------------------------------------------------------
# Dashboard / editor
# -------------------------------------------------------
def test_create_formats_structured_content(signed_in):
    created = create_code(
        signed_in,
        content_type="wifi",
        content=None,
        fields={"ssid": "Home", "password": "abc123", "security": "WPA", "hidden": False},
    )

    assert created["destination_content"] == "WIFI:T:WPA;S:Home;P:abc123;H:false;;"
    assert created["short_url"] == f"https://qr.example.test/r/{created['short_code']}"


def test_create_rejects_invalid_url(signed_in):
    response = signed_in.post(
        "/api/qr-codes", json={"name": "Bad", "content_type": "url", "content": "http://"}
    )

    assert response.status_code == 400


def test_update_toggle_and_delete(signed_in):
    created = create_code(signed_in)

    updated = signed_in.patch(
        f"/api/qr-codes/{created['id']}",
        json={"name": "Renamed", "content_type": "text", "content": "plain words"},
    ).json()
    assert updated["name"] == "Renamed"
    assert updated["content_type"] == "text"
    assert updated["short_code"] == created["short_code"]

    toggled = signed_in.post(f"/api/qr-codes/{created['id']}/toggle").json()
    assert toggled["is_active"] is False

    assert signed_in.delete(f"/api/qr-codes/{created['id']}").status_code == 204
    assert signed_in.get(f"/api/qr-codes/{created['id']}").status_code == 404


def test_changing_type_needs_content_for_the_new_type(signed_in):
    created = create_code(
        signed_in,
        content_type="wifi",
        content=None,
        fields={"ssid": "Home", "password": "abc", "security": "WPA"},
    )
    url = f"/api/qr-codes/{created['id']}"

    assert signed_in.patch(url, json={"content_type": "url"}).status_code == 400
    assert signed_in.patch(url, json={"content_type": "phone"}).status_code == 400
    as_url = signed_in.patch(
        url, json={"content_type": "url", "content": created["destination_content"]}
    )
    assert as_url.status_code == 400

    record = signed_in.get(url).json()
    assert record["content_type"] == "wifi"
    assert "https://WIFI:" not in signed_in.get(f"/r/{created['short_code']}").text

    moved = signed_in.patch(url, json={"content_type": "phone", "fields": {"phone": "+3112345"}})
    assert moved.status_code == 200
    assert moved.json()["destination_content"] == "tel:+3112345"


def test_records_are_private_to_owner(signed_in):
    created = create_code(signed_in)
    signed_in.cookies.clear()
    signed_in.post("/auth/signup", json={"email": "intruder@example.com", "password": "secret1"})

    assert signed_in.get(f"/api/qr-codes/{created['id']}").status_code == 404
    assert signed_in.delete(f"/api/qr-codes/{created['id']}").status_code == 404


# -------------------------------------------------------
# Public resolution
# -------------------------------------------------------
def test_redirect_page_counts_one_scan(signed_in):
    created = create_code(signed_in)

    page = signed_in.get(
        f"/r/{created['short_code']}",
        headers={"User-Agent": "pytest-scanner", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert page.status_code == 200
    assert "Redirecting..." in page.text
    assert "https://example.com" in page.text

    record = signed_in.get(f"/api/qr-codes/{created['id']}").json()
    assert record["scan_count"] == 1
    assert record["destination_content"] == "example.com"

    scans = signed_in.get(f"/api/qr-codes/{created['id']}/scans").json()
    assert len(scans) == 1
    assert scans[0]["user_agent"] == "pytest-scanner"
    assert scans[0]["ip_address"] == "203.0.113.9"

    stats = signed_in.get("/api/qr-codes/stats").json()
    assert stats["total_scans"] == 1
    assert stats["today_scans"] == 1


def test_display_page_shows_content_with_copy_button(signed_in):
    created = create_code(signed_in, content_type="phone", content=None, fields={"phone": "+3112345"})

    page = signed_in.get(f"/r/{created['short_code']}")

    assert page.status_code == 200
    assert "tel:+3112345" in page.text
    assert "Copy to clipboard" in page.text
    assert "Redirecting" not in page.text


def test_unknown_and_inactive_codes_are_404_without_scans(signed_in):
    assert signed_in.get("/r/doesnotexist").status_code == 404

    created = create_code(signed_in)
    signed_in.post(f"/api/qr-codes/{created['id']}/toggle")

    page = signed_in.get(f"/r/{created['short_code']}")
    assert page.status_code == 404
    assert "QR code not found or inactive" in page.text
    assert signed_in.get(f"/api/qr-codes/{created['id']}").json()["scan_count"] == 0


def test_event_stream_counts_down_then_navigates(signed_in):
    created = create_code(signed_in)

    response = signed_in.get(f"/r/{created['short_code']}/events")

    assert response.headers["content-type"].startswith("text/event-stream")
    events = parse_events(response.text)
    assert events[0] == ("state", {"state": "loading"})
    countdowns = [data["countdown"] for name, data in events if data.get("state") == "redirecting"]
    assert countdowns == [3, 2, 1, 0]
    assert events[-1] == ("navigate", {"url": "https://example.com"})


def test_event_stream_disconnect_mid_countdown_never_navigates(signed_in):
    created = create_code(signed_in)
    chunks = []

    async def visit():
        gone = asyncio.Event()
        delivered = False

        async def receive():
            nonlocal delivered
            if not delivered:
                delivered = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await gone.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            if message["type"] == "http.response.body" and message.get("body"):
                chunks.append(message["body"].decode())
                if '"redirecting"' in chunks[-1]:
                    gone.set()

        path = f"/r/{created['short_code']}/events"
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver")],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }
        await signed_in.app(scope, receive, send)
        # well past the remaining countdown
        await asyncio.sleep(0.2)

    asyncio.run(visit())

    events = parse_events("".join(chunks))
    assert [data.get("countdown") for _, data in events if data.get("state") == "redirecting"] == [3]
    assert all(name != "navigate" for name, _ in events)


def test_event_stream_reports_not_found(client):
    events = parse_events(client.get("/r/nothing-here/events").text)

    assert events[-1][1]["state"] == "error"
    assert events[-1][1]["not_found"] is True


# -------------------------------------------------------
# QR images / pages
# -------------------------------------------------------
def test_dynamic_qr_image(client):
    response = client.get("/qr/abc12345")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_static_qr_svg(client):
    response = client.post(
        "/qr/static",
        json={"content_type": "email", "fields": {"email": "hi@example.com"}, "format": "svg"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert b"<svg" in response.content


def test_static_qr_rejects_missing_content(client):
    assert client.post("/qr/static", json={"content_type": "text", "content": ""}).status_code == 400


def test_dashboard_page_lists_codes(signed_in):
    created = create_code(signed_in, name="Shop window")

    page = signed_in.get("/dashboard")

    assert page.status_code == 200
    assert "Shop window" in page.text
    assert created["short_url"] in page.text


def logo_data_url(color="#00ff00", size=64):
    buf = BytesIO()
    Image.new("RGBA", (size, size), color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def test_static_qr_applies_colours_to_png_and_svg(client):
    style = {"content": "example.com", "foreground_color": "#ff0000", "background_color": "#fafafa"}

    png = client.post("/qr/static", json=style)
    svg = client.post("/qr/static", json={**style, "format": "svg"})

    assert png.status_code == 200
    assert Image.open(BytesIO(png.content)).convert("RGB").getpixel((0, 0)) == (250, 250, 250)
    assert svg.status_code == 200
    assert b'fill="#ff0000"' in svg.content
    assert b'fill="#fafafa"' in svg.content


def test_static_qr_rejects_bad_colour(client):
    response = client.post(
        "/qr/static", json={"content": "example.com", "foreground_color": "not-a-colour"}
    )

    assert response.status_code == 422


def test_static_qr_embeds_logo_with_high_error_correction(client):
    body = {"content": "example.com", "error_correction": "L"}

    plain_h = client.post("/qr/static", json={**body, "error_correction": "H"})
    with_logo = client.post("/qr/static", json={**body, "logo": logo_data_url()})

    assert with_logo.status_code == 200
    image = Image.open(BytesIO(with_logo.content)).convert("RGB")
    assert image.size == Image.open(BytesIO(plain_h.content)).size
    assert image.getpixel((image.width // 2, image.height // 2)) == (0, 255, 0)


def test_static_qr_embeds_logo_in_svg(client):
    response = client.post(
        "/qr/static", json={"content": "example.com", "format": "svg", "logo": logo_data_url()}
    )

    assert response.status_code == 200
    assert b"<image" in response.content
    assert b"data:image/png;base64," in response.content


def test_static_qr_rejects_unreadable_logo(client):
    response = client.post(
        "/qr/static", json={"content": "example.com", "logo": "data:image/png;base64,bm90IGFuIGltYWdl"}
    )

    assert response.status_code == 400
    assert "Logo" in response.json()["detail"]
