from datetime import timedelta

import database
from conftest import auth
from routes.analytics import rate


def test_rate():
    assert rate(1, 3) == 33.33
    assert rate(5, 0) == 0
    assert rate(2, None) == 0


def test_artist_overview(client, make_user, make_artwork):
    artist = make_user(role="artist")
    fan = make_user()
    aid = make_artwork(artist["id"], views=10)
    make_artwork(artist["id"], status="sold")

    client.post(f"/api/artworks/{aid}/like", headers=auth(fan))
    client.post(f"/api/comments/artwork/{aid}", headers=auth(fan), json={"content": "Wow"})
    client.post(f"/api/follows/{artist['id']}", headers=auth(fan))

    data = client.get("/api/analytics/artist", headers=auth(artist)).json()["data"]
    assert data["artwork_stats"]["total"] == 2
    assert data["artwork_stats"]["sold"] == 1
    assert data["artwork_stats"]["total_views"] == 10
    assert data["artwork_stats"]["total_likes"] == 1
    assert data["artwork_stats"]["total_comments"] == 1
    assert data["follower_stats"]["followers"] == 1
    assert data["recent_engagement"]["comments"] == 1
    assert data["recent_engagement"]["new_followers"] == 1
    assert data["recent_engagement"]["recent_followers"][0]["follower"]["id"] == fan["id"]


def test_artist_only_endpoints(client, make_user):
    community = make_user()
    for path in ("/api/analytics/artist", "/api/analytics/followers", "/api/analytics/sales"):
        assert client.get(path, headers=auth(community)).status_code == 403


def test_artwork_engagement_rate(client, make_user, make_artwork):
    artist = make_user(role="artist")
    aid = make_artwork(artist["id"], views=3)
    fan = make_user()
    client.post(f"/api/artworks/{aid}/like", headers=auth(fan))

    assert client.get(f"/api/analytics/artwork/{aid}", headers=auth(fan)).status_code == 403
    metrics = client.get(f"/api/analytics/artwork/{aid}", headers=auth(artist)).json()["data"]["engagement_metrics"]
    assert metrics == {"views": 3, "likes": 1, "comments": 0, "engagement_rate": 33.33}


def test_artwork_without_views_has_zero_rate(client, make_user, make_artwork):
    artist = make_user(role="artist")
    aid = make_artwork(artist["id"])
    data = client.get(f"/api/analytics/artwork/{aid}", headers=auth(artist)).json()["data"]
    assert data["engagement_metrics"]["engagement_rate"] == 0


def test_regular_exhibition_capacity(client, make_user):
    admin = make_user(role="admin")
    now = database.utcnow()
    created = client.post("/api/exhibitions/", headers=auth(admin), json={
        "title": "Open Studio",
        "description": "Studios open to the public.",
        "start_date": (now + timedelta(days=1)).isoformat(),
        "end_date": (now + timedelta(days=2)).isoformat(),
        "location": "Warehouse",
        "image": "https://example.com/studio.jpg",
        "max_capacity": 4,
    }).json()["data"]
    client.post(f"/api/exhibitions/{created['id']}/register", headers=auth(make_user()))

    response = client.get(
        f"/api/analytics/exhibition/{created['id']}", params={"type": "regular"}, headers=auth(admin),
    )
    analytics = response.json()["data"]["analytics"]
    assert analytics["registered_count"] == 1
    assert analytics["capacity_utilization"] == 25.0


def test_follower_analytics(client, make_user, make_artwork):
    artist = make_user(role="artist")
    follower = make_user(role="artist")
    make_artwork(follower["id"], views=7)
    client.post(f"/api/follows/{artist['id']}", headers=auth(follower))

    body = client.get("/api/analytics/followers", headers=auth(artist)).json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["engagement"] == {"artworks_count": 1, "total_likes": 0, "total_views": 7}


def test_sales(client, make_user, make_artwork):
    artist = make_user(role="artist")
    make_artwork(artist["id"], price=100, status="sold")
    make_artwork(artist["id"], price=50, status="sold")
    make_artwork(artist["id"], price=999)

    data = client.get("/api/analytics/sales", params={"period": 7}, headers=auth(artist)).json()["data"]
    assert data["sold_count"] == 2
    assert data["total_sales"] == 150
    assert data["average_price"] == 75
    assert data["period"] == 7
