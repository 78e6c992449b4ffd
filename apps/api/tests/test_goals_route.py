from __future__ import annotations

from fastapi.testclient import TestClient

TEST_USER_ID = "00000000-0000-4000-8000-000000000001"


def _goal_row(gid: str = "g1", **overrides) -> dict:
    row = {
        "id": gid,
        "user_id": TEST_USER_ID,
        "title": "Study 2 hours",
        "description": None,
        "type": "time",
        "target_value": 120,
        "current_value": 0,
        "period": "weekly",
        "start_date": "2026-02-09",
        "end_date": "2026-02-15",
        "status": "active",
        "created_at": "2026-02-09T00:00:00+00:00",
        "updated_at": "2026-02-09T00:00:00+00:00",
    }
    row.update(overrides)
    return row


def _session(day: str, minutes: int) -> dict:
    return {"id": f"s-{day}", "resource_id": "r1", "session_date": day, "minutes_studied": minutes}


def test_list_goals_includes_progress(authenticated_client: TestClient, supabase_mock) -> None:
    supabase_mock["select"].return_value = [_goal_row(current_value=60), _goal_row("g2", current_value=500)]

    response = authenticated_client.get("/api/goals")

    assert response.status_code == 200
    body = response.json()
    assert body[0]["progress_percentage"] == 50.0
    assert body[0]["is_completed"] is False
    assert body[1]["progress_percentage"] == 100.0
    assert body[1]["is_completed"] is True


def test_create_goal_sets_server_fields(authenticated_client: TestClient, supabase_mock) -> None:
    supabase_mock["insert_one"].return_value = _goal_row()

    response = authenticated_client.post(
        "/api/goals",
        params={"today": "2026-02-09"},
        json={
            "title": "Study 2 hours",
            "type": "time",
            "target_value": 120,
            "period": "weekly",
            "end_date": "2026-02-15",
        },
    )

    assert response.status_code == 201
    row = supabase_mock["insert_one"].await_args.kwargs["row"]
    assert row["user_id"] == TEST_USER_ID
    assert row["start_date"] == "2026-02-09"
    assert row["status"] == "active"
    assert row["current_value"] == 0


def test_create_goal_rejects_end_before_start(authenticated_client: TestClient, supabase_mock) -> None:
    response = authenticated_client.post(
        "/api/goals",
        params={"today": "2026-02-09"},
        json={
            "title": "Too late",
            "type": "streak",
            "target_value": 7,
            "period": "weekly",
            "end_date": "2026-02-01",
        },
    )
    assert response.status_code == 422
    supabase_mock["insert_one"].assert_not_awaited()


def test_create_goal_rejects_unknown_period(authenticated_client: TestClient, supabase_mock) -> None:
    response = authenticated_client.post(
        "/api/goals",
        json={"title": "x", "type": "time", "target_value": 1, "period": "daily", "end_date": "2026-12-31"},
    )
    assert response.status_code == 422


def test_update_goal_status(authenticated_client: TestClient, supabase_mock) -> None:
    supabase_mock["patch"].return_value = [_goal_row(status="paused")]

    response = authenticated_client.patch("/api/goals/g1/status", json={"status": "paused"})

    assert response.status_code == 200
    assert response.json()["status"] == "paused"
    call = supabase_mock["patch"].await_args.kwargs
    assert call["params"] == {"id": "eq.g1", "user_id": f"eq.{TEST_USER_ID}"}
    assert call["payload"]["status"] == "paused"


def test_update_goal_status_not_found(authenticated_client: TestClient, supabase_mock) -> None:
    response = authenticated_client.patch("/api/goals/g9/status", json={"status": "cancelled"})
    assert response.status_code == 404


def test_refresh_goals_recomputes_and_completes(
    authenticated_client: TestClient, supabase_mock, supabase_tables
) -> None:
    supabase_tables["goals"] = [
        _goal_row("g1"),
        _goal_row("g2", type="streak", target_value=7),
        _goal_row("g3", status="paused"),
    ]
    supabase_tables["learning_sessions"] = [
        _session("2026-02-15", 60),
        _session("2026-02-14", 70),
        _session("2026-02-01", 300),
    ]

    async def _patch(*, table, bearer_token, params, payload):
        gid = params["id"].removeprefix("eq.")
        return [_goal_row(gid, **payload)]

    supabase_mock["patch"].side_effect = _patch

    response = authenticated_client.post("/api/goals/refresh", params={"today": "2026-02-15"})

    assert response.status_code == 200
    body = response.json()
    assert body["updated"] == 2
    assert body["completed"] == 1
    goals = {g["id"]: g for g in body["goals"]}
    assert goals["g1"]["current_value"] == 130
    assert goals["g1"]["status"] == "completed"
    assert goals["g2"]["current_value"] == 2
    assert goals["g2"]["status"] == "active"
    assert goals["g3"]["status"] == "paused"
    patched = [c.kwargs["params"]["id"] for c in supabase_mock["patch"].await_args_list]
    assert patched == ["eq.g1", "eq.g2"]


def test_refresh_goals_without_open_goals_skips_data_fetch(
    authenticated_client: TestClient, supabase_mock, supabase_tables
) -> None:
    supabase_tables["goals"] = [_goal_row(status="completed")]

    response = authenticated_client.post("/api/goals/refresh", params={"today": "2026-02-15"})

    assert response.status_code == 200
    assert response.json()["updated"] == 0
    tables = [c.kwargs["table"] for c in supabase_mock["select"].await_args_list]
    assert tables == ["goals"]


def test_refresh_goals_leaves_expired_streak_goal_alone(
    authenticated_client: TestClient, supabase_mock, supabase_tables
) -> None:
    supabase_tables["goals"] = [_goal_row(type="streak", target_value=3)]
    supabase_tables["learning_sessions"] = [
        _session("2026-02-20", 30),
        _session("2026-02-19", 30),
        _session("2026-02-18", 30),
    ]

    response = authenticated_client.post("/api/goals/refresh", params={"today": "2026-02-20"})

    assert response.status_code == 200
    body = response.json()
    assert body["updated"] == 0
    assert body["goals"][0]["status"] == "active"
    supabase_mock["patch"].assert_not_awaited()


def test_list_achievements(authenticated_client: TestClient, supabase_mock) -> None:
    supabase_mock["select"].return_value = [
        {
            "id": "a1",
            "title": "First Steps",
            "description": None,
            "icon": None,
            "category": "milestone",
            "earned_at": "2026-02-10T08:00:00+00:00",
        }
    ]

    response = authenticated_client.get("/api/achievements")

    assert response.status_code == 200
    assert response.json()[0]["icon"] == "🏆"
    params = supabase_mock["select"].await_args.kwargs["params"]
    assert params["order"] == "earned_at.desc"


def test_evaluate_achievements_awards_only_new_ones(
    authenticated_client: TestClient, supabase_mock, supabase_tables
) -> None:
    supabase_tables["learning_sessions"] = [
        _session("2026-02-15", 20),
        _session("2026-02-14", 20),
        _session("2026-02-13", 20),
    ]
    supabase_tables["learning_resources"] = []
    supabase_tables["achievements"] = [
        {"id": "a1", "title": "First Steps", "category": "milestone", "earned_at": "2026-02-13T00:00:00+00:00"}
    ]

    async def _insert(*, table, bearer_token, row):
        return {"id": f"new-{row['title']}", **row}

    supabase_mock["insert_one"].side_effect = _insert

    response = authenticated_client.post("/api/achievements/evaluate", params={"today": "2026-02-15"})

    assert response.status_code == 200
    awarded = response.json()["awarded"]
    assert [a["title"] for a in awarded] == ["On a Roll"]
    row = supabase_mock["insert_one"].await_args.kwargs["row"]
    assert row["user_id"] == TEST_USER_ID
    assert row["category"] == "streak"
