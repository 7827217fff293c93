"""
API tests for the public website content.
"""


class TestWebsite:
    def test_public_config_needs_no_login(self, client):
        res = client.get("/api/website/config")
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["admission_status"]["is_open"] is True
        assert data["announcements"] == []

    def test_sections_are_merged(self, owner):
        owner.put("/api/website/config", json={"contact_info": {"phone": "091-5551234"}})
        res = owner.put("/api/website/config", json={"contact_info": {"email": "info@academy.pk"}})
        contact = res.get_json()["data"]["contact_info"]
        assert contact["phone"] == "091-5551234"
        assert contact["email"] == "info@academy.pk"

    def test_section_must_be_object(self, owner):
        res = owner.put("/api/website/config", json={"hero_section": "Welcome"})
        assert res.status_code == 400

    def test_admission_toggle(self, owner, client):
        res = owner.patch("/api/website/admission-status")
        assert res.get_json()["data"]["is_open"] is False
        res = owner.patch("/api/website/admission-status",
                          json={"is_open": True, "notice": "Admissions open till June"})
        assert res.get_json()["message"] == "Admissions are open"
        public = client.get("/api/website/config").get_json()["data"]
        assert public["admission_status"]["notice"] == "Admissions open till June"

    def test_only_owner_edits(self, partner):
        assert partner.put("/api/website/config", json={}).status_code == 403


class TestAnnouncements:
    def test_public_sees_active_by_priority(self, owner, client):
        owner.post("/api/website/announcements", json={"text": "Eid holidays", "priority": 1})
        owner.post("/api/website/announcements", json={"text": "MDCAT batch starts", "priority": 5})
        owner.post("/api/website/announcements", json={"text": "Old notice", "active": False})
        body = client.get("/api/website/public/announcements").get_json()
        assert [a["text"] for a in body["data"]] == ["MDCAT batch starts", "Eid holidays"]
        owner_view = owner.get("/api/website/config").get_json()["data"]
        assert len(owner_view["announcements"]) == 3

    def test_text_required(self, owner):
        assert owner.post("/api/website/announcements", json={"text": " "}).status_code == 400

    def test_bad_priority(self, owner):
        res = owner.post("/api/website/announcements", json={"text": "Hi", "priority": "high"})
        assert res.status_code == 400

    def test_update_and_delete(self, owner):
        aid = owner.post("/api/website/announcements", json={"text": "Draft"}) \
            .get_json()["data"]["id"]
        res = owner.put(f"/api/website/announcements/{aid}", json={"active": False})
        assert res.get_json()["data"]["active"] is False
        assert owner.delete(f"/api/website/announcements/{aid}").status_code == 200
        assert owner.delete(f"/api/website/announcements/{aid}").status_code == 404
