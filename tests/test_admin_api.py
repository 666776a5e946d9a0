import pytest


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user("admin@postmaker.io", first_name="Ada", admin=True))


@pytest.fixture
def population(make_user, persistence):
    bob = make_user("bob@postmaker.io", first_name="Bob", last_name="Silva")
    carol = make_user("carol@postmaker.io", first_name="Carol", last_name="Dias", verified=False)
    persistence.activate_subscription(bob.id, "cus_bob", "sub_bob")
    return bob, carol


def test_admin_routes_reject_regular_users(client, make_user, auth_headers):
    headers = auth_headers(make_user())

    for path in ("/api/admin/stats", "/api/admin/users", "/api/admin/users/1"):
        response = client.get(path, headers=headers)
        assert response.status_code == 403
        assert response.json() == {"error": "Access denied. Admin privileges required."}


def test_admin_routes_require_token(client):
    assert client.get("/api/admin/stats").status_code == 401


def test_platform_stats(client, admin_headers, population, auth_headers):
    bob, _ = population
    client.post(
        "/api/content/generate",
        json={"contentType": "Blog Post", "topic": "Churn"},
        headers=auth_headers(bob),
    )

    stats = client.get("/api/admin/stats", headers=admin_headers).json()

    assert stats == {
        "totalUsers": 3,
        "activeSubscriptions": 1,
        "trialUsers": 2,
        "totalContent": 1,
        "usersLast30Days": 3,
        "contentLast30Days": 1,
        "monthlyRevenue": 29,
    }


def test_list_users_sorted_and_paginated(client, admin_headers, population):
    response = client.get(
        "/api/admin/users",
        params={"sortBy": "email", "sortOrder": "asc", "page": 1, "limit": 2},
        headers=admin_headers,
    )

    body = response.json()
    assert [row["email"] for row in body["users"]] == ["admin@postmaker.io", "bob@postmaker.io"]
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}
    assert body["users"][1]["subscription"]["status"] == "active"
    assert body["users"][1]["subscription"]["hasStripeSubscription"] is True


def test_list_users_search_and_status_filter(client, admin_headers, population):
    searched = client.get("/api/admin/users", params={"search": "dias"}, headers=admin_headers).json()
    assert [row["email"] for row in searched["users"]] == ["carol@postmaker.io"]
    assert searched["users"][0]["isVerified"] is False

    active = client.get("/api/admin/users", params={"status": "active"}, headers=admin_headers).json()
    assert [row["email"] for row in active["users"]] == ["bob@postmaker.io"]

    everyone = client.get("/api/admin/users", params={"status": "all"}, headers=admin_headers).json()
    assert everyone["pagination"]["total"] == 3


@pytest.mark.parametrize(
    "params",
    [{"sortBy": "password"}, {"sortOrder": "sideways"}, {"status": "gold"}],
)
def test_list_users_rejects_bad_parameters(client, admin_headers, params):
    response = client.get("/api/admin/users", params=params, headers=admin_headers)
    assert response.status_code == 400


def test_user_details(client, admin_headers, population, auth_headers):
    bob, _ = population
    bob_headers = auth_headers(bob)
    for topic in ("Churn", "Pricing"):
        client.post("/api/content/generate", json={"contentType": "Blog Post", "topic": topic}, headers=bob_headers)

    details = client.get(f"/api/admin/users/{bob.id}", headers=admin_headers).json()["user"]

    assert details["email"] == "bob@postmaker.io"
    assert details["isAdmin"] is False
    assert details["subscription"]["stripeSubscriptionId"] == "sub_bob"
    assert details["subscription"]["trialDaysRemaining"] == 0
    assert details["contentStats"]["total"] == 2
    assert {item["topic"] for item in details["recentContent"]} == {"Churn", "Pricing"}
    assert "generatedContent" not in details["recentContent"][0]


def test_trial_user_details_include_days_remaining(client, admin_headers, population):
    _, carol = population
    details = client.get(f"/api/admin/users/{carol.id}", headers=admin_headers).json()["user"]

    assert details["subscription"]["status"] == "trial"
    assert details["subscription"]["isTrialActive"] is True
    assert details["subscription"]["trialDaysRemaining"] == 15


def test_user_content(client, admin_headers, population, auth_headers):
    bob, _ = population
    client.post(
        "/api/content/generate",
        json={"contentType": "LinkedIn Post", "topic": "Hiring"},
        headers=auth_headers(bob),
    )

    body = client.get(f"/api/admin/users/{bob.id}/content", headers=admin_headers).json()

    assert body["pagination"] == {"total": 1, "page": 1, "limit": 20, "totalPages": 1}
    assert body["content"][0]["generatedContent"] == "Five steps to better onboarding emails"


def test_unknown_user_returns_not_found(client, admin_headers):
    assert client.get("/api/admin/users/9999", headers=admin_headers).status_code == 404
    assert client.get("/api/admin/users/9999/content", headers=admin_headers).status_code == 404
