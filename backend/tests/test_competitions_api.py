from datetime import timedelta
import pytest
from fakes import T0

CSV = ("id,prediction\n1,0\n2,1\n").encode()


def _upload(name="preds.csv", data=CSV):
    return {"file": (name, data, "text/csv")}


@pytest.mark.asyncio
async def test_only_admins_create_and_timeline_is_validated(client, signup, new_competition):
    _, user = await signup("user@example.com")
    _, admin = await signup("admin@example.com", admin=True)

    assert (await client.post("/competitions", headers=user, json=new_competition())).status_code == 403

    bad = new_competition(public_test_start=(T0 + timedelta(days=6)).isoformat())
    assert (await client.post("/competitions", headers=admin, json=bad)).status_code == 422
    missing_private = new_competition(competition_type="4-phase")
    assert (await client.post("/competitions", headers=admin, json=missing_private)).status_code == 422
    naive = new_competition(registration_start="2025-03-01T12:00:00")
    assert (await client.post("/competitions", headers=admin, json=naive)).status_code == 422

    r = await client.post("/competitions", headers=admin, json=new_competition())
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["phase"] == "upcoming"
    assert body["countdown_label"] == "Registration starts in"
    assert body["higher_is_better"] is True


@pytest.mark.asyncio
async def test_phase_follows_clock(client, signup, new_competition, clock):
    _, admin = await signup("admin@example.com", admin=True)
    ch = (await client.post("/competitions", headers=admin, json=new_competition())).json()
    clock.advance(timedelta(days=1))
    assert (await client.get(f"/competitions/{ch['id']}", headers=admin)).json()["phase"] == "registration"
    clock.advance(timedelta(days=7))
    body = (await client.get(f"/competitions/{ch['id']}", headers=admin)).json()
    assert body["phase"] == "public_test"
    assert body["next_deadline"].startswith((T0 + timedelta(days=21)).date().isoformat())


@pytest.mark.asyncio
async def test_individual_flow_register_approve_submit_rank(client, signup, new_competition, clock, files, scorer):
    _, admin = await signup("admin@example.com", admin=True)
    uid, user = await signup("ada@example.com", full_name="Ada")
    ch = (await client.post("/competitions", headers=admin, json=new_competition())).json()
    cid = ch["id"]

    r = await client.post(f"/competitions/{cid}/register", headers=user)
    assert r.status_code == 201, r.text
    reg = r.json()
    assert reg["status"] == "pending" and reg["user_id"] == uid

    again = await client.post(f"/competitions/{cid}/register", headers=user)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "already_registered"

    # registration not approved yet
    clock.advance(timedelta(days=8))
    r = await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "not_eligible"

    pending = (await client.get(f"/competitions/{cid}/registrations?status=pending", headers=admin)).json()
    assert [p["id"] for p in pending] == [reg["id"]]
    r = await client.post(f"/competitions/{cid}/registrations/{reg['id']}/approve", headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    scorer.queue = [0.61, 0.74]
    r = await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())
    assert r.status_code == 201, r.text
    result = r.json()
    assert result["submission"]["phase"] == "public"
    assert result["submission"]["score"] == pytest.approx(0.61)
    assert result["quota"]["daily_remaining"] == 4
    assert len(files.objects) == 1
    assert (await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())).status_code == 201

    quota = (await client.get(f"/competitions/{cid}/quota", headers=user)).json()
    assert quota["daily_remaining"] == 3
    assert quota["total_remaining"] == 48

    mine = (await client.get(f"/competitions/{cid}/submissions", headers=user)).json()
    assert len(mine) == 2

    board = (await client.get(f"/competitions/{cid}/leaderboard", headers=user)).json()
    assert board["combined"] is False
    assert board["metric_name"] == "F1 Score"
    assert len(board["rows"]) == 1
    row = board["rows"][0]
    assert row["rank"] == 1 and row["display_name"] == "Ada"
    assert row["score"] == pytest.approx(0.74)
    assert row["score_text"] == "0.7400"
    assert row["submission_count"] == 2


@pytest.mark.asyncio
async def test_submission_rejections_over_http(client, signup, new_competition, clock):
    _, admin = await signup("admin@example.com", admin=True)
    _, user = await signup("ada@example.com")
    ch = (await client.post("/competitions", headers=admin, json=new_competition(daily_submission_limit=1))).json()
    cid = ch["id"]
    reg = (await client.post(f"/competitions/{cid}/register", headers=user)).json()
    await client.post(f"/competitions/{cid}/registrations/{reg['id']}/approve", headers=admin)

    r = await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())
    assert r.status_code == 400
    assert r.json()["detail"] == {
        "code": "wrong_phase",
        "message": "Submissions are not allowed in the current competition phase (upcoming)",
        "phase": "upcoming",
    }

    clock.advance(timedelta(days=8))
    r = await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload("preds.json"))
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "malformed_input"

    assert (await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())).status_code == 201
    r = await client.post(f"/competitions/{cid}/submit", headers=user, files=_upload())
    assert r.status_code == 429
    assert r.json()["detail"]["scope"] == "daily"

    quota = (await client.get(f"/competitions/{cid}/quota", headers=user)).json()
    assert quota["daily_remaining"] == 0
    assert quota["resets_at"].startswith((clock.now() + timedelta(days=1)).date().isoformat())


@pytest.mark.asyncio
async def test_registration_closes_at_registration_end(client, signup, new_competition, clock):
    _, admin = await signup("admin@example.com", admin=True)
    _, user = await signup("late@example.com")
    ch = (await client.post("/competitions", headers=admin, json=new_competition())).json()
    clock.advance(timedelta(days=8))
    r = await client.post(f"/competitions/{ch['id']}/register", headers=user)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "registration_closed"


@pytest.mark.asyncio
async def test_four_phase_leaderboard_combines_after_private_start(
    client, signup, new_competition, clock, scorer,
):
    _, admin = await signup("admin@example.com", admin=True)
    payload = new_competition(
        competition_type="4-phase",
        private_test_start=(T0 + timedelta(days=21)).isoformat(),
        private_test_end=(T0 + timedelta(days=28)).isoformat(),
    )
    cid = (await client.post("/competitions", headers=admin, json=payload)).json()["id"]

    users = {}
    for name in ("x", "y"):
        _, h = await signup(f"{name}@example.com", full_name=name.upper())
        reg = (await client.post(f"/competitions/{cid}/register", headers=h)).json()
        await client.post(f"/competitions/{cid}/registrations/{reg['id']}/approve", headers=admin)
        users[name] = h

    clock.advance(timedelta(days=10))
    scorer.queue = [0.9, 0.95]
    await client.post(f"/competitions/{cid}/submit", headers=users["x"], files=_upload())
    await client.post(f"/competitions/{cid}/submit", headers=users["y"], files=_upload())

    board = (await client.get(f"/competitions/{cid}/leaderboard", headers=admin)).json()
    assert [r["display_name"] for r in board["rows"]] == ["Y", "X"]

    clock.advance(timedelta(days=12))
    scorer.queue = [0.7]
    r = await client.post(f"/competitions/{cid}/submit", headers=users["x"], files=_upload())
    assert r.json()["submission"]["phase"] == "private"

    board = (await client.get(f"/competitions/{cid}/leaderboard", headers=admin)).json()
    assert board["combined"] is True
    assert [r["display_name"] for r in board["rows"]] == ["X"]
    assert board["rows"][0]["score"] == pytest.approx(0.8)
    assert board["rows"][0]["private_score"] == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_soft_deleted_competition_is_hidden(client, signup, new_competition):
    _, admin = await signup("admin@example.com", admin=True)
    cid = (await client.post("/competitions", headers=admin, json=new_competition())).json()["id"]
    assert (await client.delete(f"/competitions/{cid}", headers=admin)).status_code == 204
    assert (await client.get(f"/competitions/{cid}", headers=admin)).status_code == 404
    assert (await client.get("/competitions", headers=admin)).json() == []


@pytest.mark.asyncio
async def test_admin_edits_competition(client, signup, new_competition, clock):
    _, admin = await signup("admin@example.com", admin=True)
    _, user = await signup("ada@example.com")
    cid = (await client.post("/competitions", headers=admin, json=new_competition())).json()["id"]

    assert (await client.put(f"/competitions/{cid}", headers=user, json=new_competition(title="Mine"))).status_code == 403
    # the create-time timeline rules apply to edits too
    bad = new_competition(registration_end=(T0 + timedelta(days=8)).isoformat())
    assert (await client.put(f"/competitions/{cid}", headers=admin, json=bad)).status_code == 422
    assert (await client.put(f"/competitions/{cid}", headers=admin, json=new_competition(competition_type="4-phase"))).status_code == 422

    four = new_competition(
        title="Churn Prediction II", competition_type="4-phase", scoring_metric="rmse",
        private_test_start=(T0 + timedelta(days=21)).isoformat(),
        private_test_end=(T0 + timedelta(days=28)).isoformat(),
        daily_submission_limit=3,
    )
    r = await client.put(f"/competitions/{cid}", headers=admin, json=four)
    assert r.status_code == 200, r.text
    body = r.json()
    assert (body["title"], body["competition_type"], body["daily_submission_limit"]) == ("Churn Prediction II", "4-phase", 3)
    assert body["higher_is_better"] is False
    assert (await client.get(f"/competitions/{cid}", headers=user)).json()["title"] == "Churn Prediction II"

    assert (await client.post(f"/competitions/{cid}/register", headers=user)).status_code == 201
    r = await client.put(f"/competitions/{cid}", headers=admin, json={**four, "participation_type": "team"})
    assert r.status_code == 409

    assert (await client.delete(f"/competitions/{cid}", headers=admin)).status_code == 204
    assert (await client.put(f"/competitions/{cid}", headers=admin, json=four)).status_code == 404
