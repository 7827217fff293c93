"""
API tests for login, staff accounts and user management.
"""


class TestLogin:
    def test_missing_fields(self, client):
        res = client.post("/api/auth/login", json={"username": "owner"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["success"] is False
        assert body["message"] == "Username and password are required"

    def test_wrong_password(self, client):
        res = client.post("/api/auth/login", json={"username": "owner", "password": "nope"})
        assert res.status_code == 401

    def test_token_in_body_is_refused(self, client):
        res = client.post("/api/auth/login", json={"username": "owner", "password": "owner123",
                                                   "token": "abc"})
        assert res.status_code == 403

    def test_login_and_me(self, client):
        res = client.post("/api/auth/login", json={"username": "owner", "password": "owner123"})
        assert res.status_code == 200
        assert res.get_json()["data"]["role"] == "owner"
        me = client.get("/api/auth/me").get_json()["data"]
        assert me["username"] == "owner"
        assert me["last_login"] is not None

    def test_anonymous_gets_json_401(self, client):
        res = client.get("/api/auth/me")
        assert res.status_code == 401
        assert res.get_json() == {"success": False, "message": "Not authorized - please log in"}

    def test_logout(self, owner):
        assert owner.post("/api/auth/logout").status_code == 200
        assert owner.get("/api/auth/me").status_code == 401

    def test_unknown_route_uses_envelope(self, client):
        res = client.get("/api/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["success"] is False


class TestStaffAccounts:
    def test_create_staff_assigns_code(self, owner):
        res = owner.post("/api/auth/create-staff", json={
            "username": "desk1", "password": "secret1", "full_name": "Desk One"})
        assert res.status_code == 201
        assert res.get_json()["data"]["user_code"] == "STAFF-001"
        res = owner.post("/api/auth/create-staff", json={
            "username": "desk2", "password": "secret2", "full_name": "Desk Two"})
        assert res.get_json()["data"]["user_code"] == "STAFF-002"
        listed = owner.get("/api/auth/staff").get_json()
        assert listed["count"] == 2

    def test_codes_continue_after_delete(self, owner):
        first = owner.post("/api/auth/create-staff", json={
            "username": "desk1", "password": "secret1", "full_name": "Desk One"}).get_json()["data"]
        owner.post("/api/auth/create-staff", json={
            "username": "desk2", "password": "secret2", "full_name": "Desk Two"})
        assert owner.delete(f"/api/users/{first['id']}").status_code == 200
        res = owner.post("/api/auth/create-staff", json={
            "username": "desk3", "password": "secret3", "full_name": "Desk Three"})
        assert res.status_code == 201, res.get_json()
        assert res.get_json()["data"]["user_code"] == "STAFF-003"
        res = owner.post("/api/users", json={"username": "clerk", "password": "secret4",
                                             "full_name": "Clerk", "role": "staff"})
        assert res.status_code == 201, res.get_json()
        assert res.get_json()["data"]["user_code"] == "STAFF-004"

    def test_duplicate_username_conflicts(self, owner):
        payload = {"username": "desk", "password": "secret1", "full_name": "Desk"}
        assert owner.post("/api/auth/create-staff", json=payload).status_code == 201
        res = owner.post("/api/auth/create-staff", json=payload)
        assert res.status_code == 409
        assert res.get_json()["message"] == "Username already exists"

    def test_short_password_rejected(self, owner):
        res = owner.post("/api/auth/create-staff", json={
            "username": "desk", "password": "123", "full_name": "Desk"})
        assert res.status_code == 400

    def test_only_owner_creates_staff(self, partner):
        res = partner.post("/api/auth/create-staff", json={
            "username": "desk", "password": "secret1", "full_name": "Desk"})
        assert res.status_code == 403

    def test_deactivated_staff_cannot_login(self, owner, client):
        created = owner.post("/api/auth/create-staff", json={
            "username": "desk", "password": "secret1", "full_name": "Desk"}).get_json()["data"]
        res = owner.patch(f"/api/auth/staff/{created['id']}/toggle")
        assert res.get_json()["data"]["is_active"] is False
        res = client.post("/api/auth/login", json={"username": "desk", "password": "secret1"})
        assert res.status_code == 403

    def test_reset_and_change_password(self, owner, login_as):
        created = owner.post("/api/auth/create-staff", json={
            "username": "desk", "password": "secret1", "full_name": "Desk"}).get_json()["data"]
        res = owner.post("/api/auth/reset-password", json={"user_id": created["id"],
                                                           "new_password": "newpass1"})
        assert res.status_code == 200
        desk = login_as("desk", "newpass1")
        res = desk.post("/api/auth/change-password", json={
            "old_password": "newpass1", "new_password": "other12", "confirm_password": "nope12"})
        assert res.status_code == 400
        res = desk.post("/api/auth/change-password", json={
            "old_password": "newpass1", "new_password": "other12", "confirm_password": "other12"})
        assert res.status_code == 200
        login_as("desk", "other12")


class TestUsers:
    def test_list_filters_by_role(self, owner):
        body = owner.get("/api/users?role=partner").get_json()
        assert body["pagination"]["total"] == 2
        assert {u["partner_key"] for u in body["data"]} == {"partner_a", "partner_b"}

    def test_cannot_create_owner(self, owner):
        res = owner.post("/api/users", json={"username": "boss2", "password": "secret1",
                                             "full_name": "Boss", "role": "owner"})
        assert res.status_code == 400
        assert "role" in res.get_json()["errors"]

    def test_cannot_delete_self(self, owner):
        me = owner.get("/api/auth/me").get_json()["data"]
        assert owner.delete(f"/api/users/{me['id']}").status_code == 400

    def test_toggle_and_delete(self, owner):
        created = owner.post("/api/users", json={"username": "clerk", "password": "secret1",
                                                 "full_name": "Clerk", "role": "staff"})
        uid = created.get_json()["data"]["id"]
        res = owner.patch(f"/api/users/{uid}/toggle-status")
        assert res.get_json()["data"]["is_active"] is False
        assert owner.delete(f"/api/users/{uid}").status_code == 200
        assert owner.delete(f"/api/users/{uid}").status_code == 404

    def test_partner_codes_follow_seeded_accounts(self, owner):
        res = owner.post("/api/users", json={"username": "partner_c", "password": "secret1",
                                             "full_name": "Third Partner", "role": "partner"})
        assert res.status_code == 201, res.get_json()
        assert res.get_json()["data"]["user_code"] == "PARTNER-003"
