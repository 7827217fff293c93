"""Shared pytest fixtures.

Fixture overview
----------------
app             - application on an in-memory database, seeded with the owner
                  and the two partner accounts
client          - anonymous test client
owner / partner - test clients already logged in as those accounts
staff           - client for a freshly created staff account
academy_class   - a regular session with one class (Biology, Physics)
teacher         - a staff teacher on the default 70% share
admit           - factory that admits a student through the API
login_as        - factory returning a client logged in as any username
"""

import pytest

from academy import create_app
from academy.cli import seed_defaults
from academy.extensions import db as _db

DEFAULT_PASSWORD = "123456"


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    with app.app_context():
        _db.create_all()
        seed_defaults(with_partners=True)
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login_as(app):
    def _login(username, password=DEFAULT_PASSWORD):
        c = app.test_client()
        res = c.post("/api/auth/login", json={"username": username, "password": password})
        assert res.status_code == 200, res.get_json()
        return c
    return _login


@pytest.fixture
def owner(login_as):
    return login_as("owner", "owner123")


@pytest.fixture
def partner(login_as):
    return login_as("partner_a")


@pytest.fixture
def staff(owner, login_as):
    res = owner.post("/api/auth/create-staff", json={
        "username": "desk", "password": "desk-pass", "full_name": "Front Desk"})
    assert res.status_code == 201, res.get_json()
    return login_as("desk", "desk-pass")


@pytest.fixture
def academy_class(owner):
    res = owner.post("/api/sessions", json={
        "name": "Session 2026", "status": "active",
        "start_date": "2026-04-01", "end_date": "2027-03-31"})
    assert res.status_code == 201, res.get_json()
    session = res.get_json()["data"]
    res = owner.post("/api/classes", json={
        "title": "10th Pre-Medical", "grade_level": "10th", "group": "Pre-Medical",
        "session_id": session["id"],
        "subjects": [{"name": "Biology", "fee": 0}, {"name": "Physics", "fee": 3500}]})
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


@pytest.fixture
def teacher(owner):
    res = owner.post("/api/teachers", json={
        "name": "Ayesha Khan", "subject": "Biology", "phone": "0300-1111111"})
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


@pytest.fixture
def admit(owner, academy_class):
    def _admit(**fields):
        payload = {"name": "Ali Raza", "father_name": "Raza Ahmed", "gender": "Male",
                   "parent_cell": "0300-1234567", "class_id": academy_class["id"],
                   "subjects": ["Biology", "Physics"]}
        payload.update(fields)
        return owner.post("/api/students", json=payload)
    return _admit
