"""
Run the suite against a private in-memory SQLite database.

The environment has to be set before anything imports app.settings /
app.db, so this runs ahead of every test module.
"""
import os

os.environ["DB_URL"] = "sqlite+pysqlite://"
os.environ["BACKGROUND_RETRY_DELAY_SECONDS"] = "0"

import uuid  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.repositories.user_repo import UserRepository  # noqa: E402

Base.metadata.create_all(engine)

PWD = "StrongPassw0rd!"
client = TestClient(app)


def uniq_email(prefix="u"):
    return f"{prefix}-{uuid.uuid4().hex[:8]}@ex.com"


def register_and_login(email=None, *, admin=False):
    email = email or uniq_email()
    r = client.post("/auth/register", json={"email": email, "name": "Test", "password": PWD})
    assert r.status_code == 201, r.text
    if admin:
        db = SessionLocal()
        repo = UserRepository(db)
        repo.set_role(repo.get_by_email(email).id, role="admin")
        db.close()
    tok = client.post("/auth/login", json={"email": email, "password": PWD}).json()["access_token"]
    return email, {"Authorization": f"Bearer {tok}"}


# Three exercises with 3/3/1 sets; the last one is timed
DEFAULT_DAY = {
    "title": "Lower A",
    "items": [
        {"exercise_name": "Back Squat", "sets": 3, "reps": "8-12", "weight_kg": 60, "rest_seconds": 90,
         "video_url": "https://youtu.be/dQw4w9WgXcQ"},
        {"exercise_name": "Romanian Deadlift", "sets": 3, "reps": "10", "weight_kg": 50,
         "alternatives": [{"alternative_name": "Good Morning", "difficulty_level": "easier",
                           "video_url": "https://vimeo.com/76979871"}]},
        {"exercise_name": "Plank", "sets": 1, "seconds": 45, "mode": "timed"},
    ],
}


@pytest.fixture
def coach():
    return register_and_login(uniq_email("coach"), admin=True)[1]


@pytest.fixture
def trainee():
    """(email, auth headers) of a fresh trainee."""
    return register_and_login(uniq_email("trainee"))


@pytest.fixture
def assign_program(coach):
    """Build a template through the admin API and assign it; returns the program detail."""
    def _assign(user_email, days=None, **extra):
        tpl = client.post("/admin/templates", headers=coach, json={"title": "Block A", "duration_weeks": 4})
        assert tpl.status_code == 201, tpl.text
        tpl_id = tpl.json()["id"]
        for day in days if days is not None else [DEFAULT_DAY]:
            d = client.post(f"/admin/templates/{tpl_id}/days", headers=coach, json={"title": day["title"]})
            assert d.status_code == 201, d.text
            for item in day["items"]:
                item = dict(item)
                alternatives = item.pop("alternatives", [])
                r = client.post(f"/admin/days/{d.json()['id']}/items", headers=coach, json=item)
                assert r.status_code == 201, r.text
                for alt in alternatives:
                    a = client.post(f"/admin/items/{r.json()['id']}/alternatives", headers=coach, json=alt)
                    assert a.status_code == 201, a.text
        body = {"user_email": user_email, "start_date": date.today().isoformat(), **extra}
        r = client.post(f"/admin/templates/{tpl_id}/assign", headers=coach, json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _assign


@pytest.fixture
def started(trainee, assign_program):
    """A trainee with an assigned program and an open session on its first day."""
    email, headers = trainee
    program = assign_program(email)
    day = program["days"][0]
    r = client.post(f"/workouts/{program['id']}/{day['id']}/start", headers=headers)
    assert r.status_code == 201, r.text
    state = r.json()
    return {
        "headers": headers,
        "program": program,
        "day": day,
        "state": state,
        "session_id": state["session"]["id"],
        "items": [i["id"] for i in state["items"]],
    }
