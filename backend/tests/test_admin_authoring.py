import uuid
from datetime import date, timedelta

from conftest import client


def new_template(coach, title="Hypertrophy"):
    r = client.post("/admin/templates", headers=coach, json={"title": title, "goal": "size", "duration_weeks": 4})
    assert r.status_code == 201, r.text
    return r.json()["id"]


def add_day(coach, tpl_id, title):
    r = client.post(f"/admin/templates/{tpl_id}/days", headers=coach, json={"title": title})
    assert r.status_code == 201, r.text
    return r.json()


def add_item(coach, day_id, **item):
    body = {"exercise_name": "Bench Press", "sets": 3, "reps": "8", "weight_kg": 40, **item}
    return client.post(f"/admin/days/{day_id}/items", headers=coach, json=body)


def template(coach, tpl_id):
    r = client.get(f"/admin/templates/{tpl_id}", headers=coach)
    assert r.status_code == 200, r.text
    return r.json()


def test_template_crud(coach):
    tpl_id = new_template(coach)
    assert any(t["id"] == tpl_id for t in client.get("/admin/templates", headers=coach).json())

    r = client.patch(f"/admin/templates/{tpl_id}", headers=coach, json={"title": "  Strength  "})
    assert r.status_code == 200
    assert r.json()["title"] == "Strength"
    assert r.json()["goal"] == "size"

    assert client.delete(f"/admin/templates/{tpl_id}", headers=coach).status_code == 204
    r = client.get(f"/admin/templates/{tpl_id}", headers=coach)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"


def test_days_get_sequential_order_and_move_swaps_neighbours(coach):
    tpl_id = new_template(coach)
    d1, d2, d3 = (add_day(coach, tpl_id, t) for t in ("Push", "Pull", "Legs"))
    assert [d["day_order"] for d in (d1, d2, d3)] == [1, 2, 3]

    r = client.post(f"/admin/days/{d2['id']}/move", headers=coach, json={"direction": "up"})
    assert r.json() == {"moved": True}
    days = {d["title"]: d["day_order"] for d in template(coach, tpl_id)["days"]}
    assert days == {"Pull": 1, "Push": 2, "Legs": 3}

    # already at the top / bottom
    assert client.post(f"/admin/days/{d2['id']}/move", headers=coach, json={"direction": "up"}).json() == {"moved": False}
    assert client.post(f"/admin/days/{d3['id']}/move", headers=coach, json={"direction": "down"}).json() == {"moved": False}
    assert client.post(f"/admin/days/{d3['id']}/move", headers=coach, json={"direction": "sideways"}).status_code == 422


def test_items_move_down_leaves_other_items_alone(coach):
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Full body")
    ids = [add_item(coach, day["id"], exercise_name=n).json()["id"] for n in ("A", "B", "C", "D")]

    r = client.post(f"/admin/items/{ids[1]}/move", headers=coach, json={"direction": "down"})
    assert r.json() == {"moved": True}
    items = template(coach, tpl_id)["days"][0]["items"]
    assert [(i["exercise_name"], i["order_in_day"]) for i in items] == [("A", 1), ("C", 2), ("B", 3), ("D", 4)]


def test_item_validation_reports_every_field(coach):
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Day")

    r = add_item(coach, day["id"], exercise_name=" ", sets=0, reps="AMRAP", weight_kg=-5)
    assert r.status_code == 422
    fields = r.json()["error"]["fields"]
    assert set(fields) == {"exercise_name", "sets", "reps", "weight_kg"}

    r = add_item(coach, day["id"], exercise_name="Wall sit", seconds=30, weight_kg=10)
    assert r.status_code == 422
    assert r.json()["error"]["fields"] == {"weight_kg": "A timed exercise cannot also have a weight"}

    r = add_item(coach, day["id"], exercise_name="Hollow hold", mode="timed", weight_kg=None, reps=None)
    assert r.status_code == 422
    assert "seconds" in r.json()["error"]["fields"]


def test_unilateral_items_derive_per_side_reps(coach):
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Day")
    r = add_item(coach, day["id"], exercise_name="Split Squat", reps=" 10 ", is_unilateral=True)
    assert r.status_code == 201, r.text
    body = r.json()
    assert (body["reps"], body["reps_per_side"], body["total_reps"]) == ("10", 10, 20)

    r = client.patch(f"/admin/items/{body['id']}", headers=coach, json={"is_unilateral": False})
    assert (r.json()["reps_per_side"], r.json()["total_reps"]) == (None, None)


def test_switching_an_item_to_timed(coach):
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Day")
    item = add_item(coach, day["id"]).json()
    r = client.patch(f"/admin/items/{item['id']}", headers=coach, json={"seconds": 40, "weight_kg": None})
    assert r.status_code == 200, r.text
    assert (r.json()["seconds"], r.json()["weight_kg"]) == (40, None)


def test_alternatives_add_and_delete(coach):
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Day")
    item = add_item(coach, day["id"]).json()
    r = client.post(f"/admin/items/{item['id']}/alternatives", headers=coach,
                    json={"alternative_name": "Push-up", "difficulty_level": "easier",
                          "equipment_required": [], "muscle_groups": ["chest", "triceps"]})
    assert r.status_code == 201
    alt = r.json()
    assert template(coach, tpl_id)["days"][0]["items"][0]["alternatives"][0]["muscle_groups"] == ["chest", "triceps"]

    assert client.delete(f"/admin/alternatives/{alt['id']}", headers=coach).status_code == 204
    assert template(coach, tpl_id)["days"][0]["items"][0]["alternatives"] == []
    r = client.delete(f"/admin/alternatives/{alt['id']}", headers=coach)
    assert r.status_code == 404


def test_assignment_copies_template(trainee, coach):
    email, headers = trainee
    tpl_id = new_template(coach)
    day = add_day(coach, tpl_id, "Day")
    add_item(coach, day["id"], exercise_name="Row", weight_kg=35)

    r = client.post(f"/admin/templates/{tpl_id}/assign", headers=coach,
                    json={"user_email": email.upper(), "start_date": date.today().isoformat(),
                          "title_override": "Alex's block"})
    assert r.status_code == 201, r.text
    program = r.json()
    assert program["template_id"] == tpl_id
    assert program["title_override"] == "Alex's block"
    assert program["status"] == "active"
    assert program["days"][0]["items"][0]["exercise_name"] == "Row"

    # editing the template afterwards leaves the copy alone
    client.patch(f"/admin/days/{day['id']}", headers=coach, json={"title": "Renamed"})
    mine = client.get(f"/programs/{program['id']}", headers=headers).json()
    assert mine["days"][0]["title"] == "Day"


def test_assigning_a_template_without_days_fails(trainee, coach):
    email, headers = trainee
    tpl_id = new_template(coach, "Empty")
    r = client.post(f"/admin/templates/{tpl_id}/assign", headers=coach,
                    json={"user_email": email, "start_date": date.today().isoformat()})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "PROGRAM_ASSIGNMENT_FAILED"
    assert client.get("/programs", headers=headers).json() == []


def test_assigning_to_unknown_user(coach):
    tpl_id = new_template(coach)
    r = client.post(f"/admin/templates/{tpl_id}/assign", headers=coach,
                    json={"user_email": f"{uuid.uuid4().hex[:8]}@nowhere.com", "start_date": "2026-01-05"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "USER_NOT_FOUND"


def test_programs_past_their_duration_are_completed(trainee, coach, assign_program):
    email, headers = trainee
    old = assign_program(email, start_date=(date.today() - timedelta(weeks=5)).isoformat())
    fresh = assign_program(email)

    r = client.post("/admin/programs/complete-due", headers=coach)
    assert r.status_code == 200
    assert old["id"] in r.json()["completed"]
    assert fresh["id"] not in r.json()["completed"]

    assert client.get(f"/programs/{old['id']}", headers=headers).json()["status"] == "completed"
    active = client.get("/programs", headers=headers, params={"active_only": True}).json()
    assert [p["id"] for p in active] == [fresh["id"]]


def test_weekly_progression_uses_recent_rpe(trainee, coach, assign_program):
    email, headers = trainee
    program = assign_program(email, auto_progression_enabled=True)
    day = program["days"][0]
    state = client.post(f"/workouts/{program['id']}/{day['id']}/start", headers=headers).json()
    squat = state["items"][0]["id"]
    client.post(f"/workouts/sessions/{state['session']['id']}/items/{squat}/rpe", headers=headers, json={"rpe": 4})

    r = client.post("/admin/programs/weekly-progression", headers=coach)
    assert r.status_code == 200
    assert r.json()["progressed"][program["id"]] == 1

    items = client.get(f"/programs/{program['id']}", headers=headers).json()["days"][0]["items"]
    assert items[0]["reps"] == "9-13"
    assert items[1]["reps"] == "10"


def test_auto_progress_single_program(trainee, coach, assign_program):
    email, headers = trainee
    program = assign_program(email)
    day = program["days"][0]
    state = client.post(f"/workouts/{program['id']}/{day['id']}/start", headers=headers).json()
    rdl = state["items"][1]["id"]
    client.post(f"/workouts/sessions/{state['session']['id']}/items/{rdl}/rpe", headers=headers, json={"rpe": 9})

    r = client.post(f"/admin/programs/{program['id']}/auto-progress", headers=coach)
    assert r.status_code == 200
    changed = r.json()["changed"]
    assert [(c["current_reps"], c["suggested_reps"], c["action"]) for c in changed] == [("10", "9", "decrease")]

    r = client.post(f"/admin/programs/{uuid.uuid4()}/auto-progress", headers=coach)
    assert r.status_code == 404
