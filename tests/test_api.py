from datetime import datetime, timedelta


def register(client, email="citizen@example.com", name="Karim"):
    return client.post("/users", json={"email": email, "displayName": name})


def report(client, email="citizen@example.com", title="Pothole"):
    return client.post("/issues", json={"title": title, "district": "Dhaka", "submittedBy": email})


def test_root_and_health(client):
    assert client.get("/").json() == "Server is connecting."

    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["collections"] == {"users": 0, "issues": 0, "payments": 0}


def test_register_twice(client):
    first = register(client)
    assert first.status_code == 200
    assert first.json()["message"] == "User created successfully"

    second = register(client)
    assert second.json() == {"success": True, "message": "User already exists"}


def test_profile_includes_quota(client):
    register(client)
    report(client)

    body = client.get("/users/citizen@example.com").json()

    assert body["email"] == "citizen@example.com"
    assert body["display_name"] == "Karim"
    assert body["issueCount"] == 1
    assert body["remainingIssues"] == 2
    assert body["canReportMore"] is True


def test_unknown_profile_is_404(client):
    response = client.get("/users/ghost@example.com")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "User not found"}


def test_quota_conflict_payload(client):
    register(client)
    for i in range(3):
        assert report(client, title=f"Issue {i}").status_code == 200

    response = report(client, title="Issue 4")

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["limitReached"] is True
    assert body["currentCount"] == 3
    assert body["maxLimit"] == 3


def test_blocked_user_cannot_report(client):
    user_id = register(client).json()["insertedId"]
    client.patch(f"/users/{user_id}/role", json={"role": "blocked"})

    response = report(client)

    assert response.status_code == 403
    assert response.json()["role"] == "blocked"


def test_invalid_role_is_400(client):
    user_id = register(client).json()["insertedId"]
    response = client.patch(f"/users/{user_id}/role", json={"role": "owner"})
    assert response.status_code == 400


def test_status_flow_with_staff(client):
    register(client)
    staff_id = register(client, "staff@example.com", "Rahima").json()["insertedId"]
    client.patch(f"/users/{staff_id}/role", json={"role": "staff"})
    issue_id = report(client).json()["insertedId"]

    assigned = client.patch(f"/issues/{issue_id}/assign-staff", json={"staffId": staff_id})
    assert assigned.status_code == 200
    assert assigned.json()["assignedStaff"]["name"] == "Rahima"

    bad = client.patch(f"/issues/{issue_id}/status", json={"status": "done"})
    assert bad.status_code == 400

    resolved = client.patch(f"/issues/{issue_id}/status", json={"status": "resolved"})
    assert resolved.json()["issue"] == {"id": issue_id, "title": "Pothole", "status": "resolved"}

    staff_issues = client.get(f"/staff/{staff_id}/issues").json()
    assert staff_issues["count"] == 1

    stats = client.get("/staff-stats").json()["staffStats"][0]
    assert stats["email"] == "staff@example.com"
    assert stats["resolved_issues_count"] == 1
    assert stats["successRate"] == 100


def test_list_issues_boosted_filter(client):
    register(client)
    first = report(client, title="First").json()["insertedId"]
    report(client, title="Second")
    client.patch(f"/issues/{first}/boost", json={})

    titles = [i["title"] for i in client.get("/issues").json()]
    assert titles[0] == "First"
    assert [i["title"] for i in client.get("/issues", params={"status": "boosted"}).json()] == ["First"]


def test_premium_checkout_and_verify(client, gateway):
    register(client)

    checkout = client.post(
        "/create-premium-payment",
        json={"amount": 499, "userEmail": "citizen@example.com", "plan": "monthly"},
    ).json()
    assert checkout["success"] is True
    assert checkout["url"]

    unpaid = client.get("/premium-verify", params={"session_id": checkout["sessionId"]})
    assert unpaid.status_code == 400

    gateway.pay(checkout["sessionId"])
    verified = client.get("/premium-verify", params={"session_id": checkout["sessionId"]}).json()
    assert verified["userUpdated"] is True
    assert verified["alreadyProcessed"] is False
    assert verified["payment"]["type"] == "premium"

    again = client.get("/premium-verify", params={"session_id": checkout["sessionId"]}).json()
    assert again["alreadyProcessed"] is True
    assert again["payment"]["id"] == verified["payment"]["id"]

    history = client.get("/payments", params={"email": "citizen@example.com"}).json()
    assert history["count"] == 1

    stats = client.get("/user-stats/citizen@example.com").json()
    assert stats["isPremium"] is True
    assert stats["maxIssues"] == "unlimited"
    assert client.get("/premium-users").json()["count"] == 1


def test_boost_checkout_and_verify(client, gateway):
    register(client)
    issue_id = report(client).json()["insertedId"]

    checkout = client.post(
        "/create-boost-payment",
        json={"amount": 100, "issueId": issue_id, "userEmail": "citizen@example.com"},
    ).json()
    gateway.pay(checkout["sessionId"])

    verified = client.get("/payment-verify", params={"session_id": checkout["sessionId"]}).json()
    assert verified["issueUpdated"] is True
    assert client.get(f"/issues/{issue_id}").json()["is_boosted"] is True

    again = client.post(
        "/create-boost-payment",
        json={"amount": 100, "issueId": issue_id, "userEmail": "citizen@example.com"},
    )
    assert again.status_code == 409


def test_checkout_missing_fields_is_400(client):
    response = client.post("/create-premium-payment", json={"userEmail": "citizen@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required payment information"


def test_unconfigured_gateway_is_503(client, gateway):
    register(client)
    gateway.configured = False
    response = client.post("/create-premium-payment", json={"amount": 499, "userEmail": "citizen@example.com"})
    assert response.status_code == 503
    assert client.get("/health").json()["stripe"] == "not configured"


def test_payments_requires_email(client):
    assert client.get("/payments").status_code == 400


def test_grant_premium_endpoint(client):
    register(client)
    expires = (datetime.utcnow() + timedelta(days=30)).isoformat()

    ok = client.patch("/users/citizen@example.com/premium", json={"plan": "monthly", "expiresAt": expires})
    assert ok.status_code == 200

    past = (datetime.utcnow() - timedelta(days=1)).isoformat()
    backdated = client.patch("/users/citizen@example.com/premium", json={"plan": "monthly", "expiresAt": past})
    assert backdated.status_code == 400


def test_delete_user_cascade(client):
    user_id = register(client).json()["insertedId"]
    report(client)

    body = client.delete(f"/users/{user_id}").json()

    assert body["deletedCount"] == 1
    assert body["issuesDeleted"] == 1
    assert client.get("/issues").json() == []
    assert client.delete(f"/users/{user_id}").status_code == 404


def test_users_by_role(client):
    register(client)
    assert client.get("/users-by-role/user").json()["count"] == 1
    assert client.get("/users", params={"searchText": "karim"}).json()[0]["email"] == "citizen@example.com"


def test_lapsed_premium_is_reported_as_free(client, make_user):
    lapsed_id = make_user("lapsed@example.com", is_premium=True, premium_plan="monthly",
                          premium_expires_at=datetime.utcnow() - timedelta(days=2)).id
    make_user("active@example.com", is_premium=True, premium_plan="yearly",
              premium_expires_at=datetime.utcnow() + timedelta(days=30))

    premium = client.get("/premium-users").json()
    assert premium["count"] == 1
    assert [u["email"] for u in premium["users"]] == ["active@example.com"]

    expected = {"lapsed@example.com": False, "active@example.com": True}
    assert {u["email"]: u["is_premium"] for u in client.get("/users").json()} == expected
    by_role = client.get("/users-by-role/user").json()["users"]
    assert {u["email"]: u["is_premium"] for u in by_role} == expected

    changed = client.patch(f"/users/{lapsed_id}/role", json={"role": "staff"}).json()
    assert changed["user"]["isPremium"] is False
