from conftest import client, register_and_login, uniq_email


def test_admin_routes_need_coach_role(trainee):
    _, headers = trainee
    assert client.get("/admin/templates", headers=headers).status_code == 403
    r = client.post("/admin/templates", headers=headers, json={"title": "Nope"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient role"


def test_program_visible_to_owner_and_coach_only(trainee, coach, assign_program):
    email, owner = trainee
    program = assign_program(email)
    _, stranger = register_and_login(uniq_email("other"))

    r = client.get(f"/programs/{program['id']}", headers=owner)
    assert r.status_code == 200
    assert [d["title"] for d in r.json()["days"]] == ["Lower A"]

    assert client.get(f"/programs/{program['id']}", headers=coach).status_code == 200

    r = client.get(f"/programs/{program['id']}", headers=stranger)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "PROGRAM_FORBIDDEN"


def test_my_programs_lists_only_own(trainee, assign_program):
    email, headers = trainee
    program = assign_program(email)
    ids = [p["id"] for p in client.get("/programs", headers=headers).json()]
    assert ids == [program["id"]]

    _, other = register_and_login(uniq_email("other"))
    assert client.get("/programs", headers=other).json() == []


def test_user_profile_owner_or_coach(trainee, coach):
    _, headers = trainee
    me = client.get("/auth/me", headers=headers).json()
    assert client.get(f"/users/{me['id']}", headers=headers).status_code == 200
    assert client.get(f"/users/{me['id']}", headers=coach).status_code == 200

    _, other = register_and_login(uniq_email("other"))
    assert client.get(f"/users/{me['id']}", headers=other).status_code == 403
