from conftest import auth_headers

from chautari.models import Notification
from chautari.services.notification_service import notify_agency_members, notify_user


class TestNotificationService:
    def test_notify_user_stores_in_app_row(self, db, patient):
        assert notify_user(db, patient.id, "request_submitted", "Submitted", "Body", reference_id="r1", reference_type="switch_request")

        row = db.query(Notification).one()
        assert row.channel == "push"
        assert row.read_at is None
        assert row.reference_type == "switch_request"

    def test_fan_out_skips_inactive_and_excluded_members(self, db, agency, agency_admin, agency_staff):
        from chautari.models import AgencyMember

        db.query(AgencyMember).filter(AgencyMember.user_id == agency_staff.id).update({"is_active": False})
        db.commit()

        assert notify_agency_members(db, agency.id, "new_message", "Hi", "Body") == 1
        assert notify_agency_members(db, agency.id, "new_message", "Hi", "Body", exclude_user_id=agency_admin.id) == 0


class TestNotificationInbox:
    def test_list_and_unread_count(self, client, db, patient, other_patient):
        notify_user(db, patient.id, "a", "First", "Body")
        notify_user(db, patient.id, "b", "Second", "Body")
        notify_user(db, other_patient.id, "c", "Theirs", "Body")

        resp = client.get("/notifications", headers=auth_headers(patient))

        assert resp.status_code == 200
        body = resp.json()
        assert body["unread_count"] == 2
        assert [n["title"] for n in body["notifications"]] == ["Second", "First"]
        assert all(n["is_read"] is False for n in body["notifications"])

    def test_mark_one_read(self, client, db, patient):
        notify_user(db, patient.id, "a", "First", "Body")
        notification_id = db.query(Notification).one().id
        headers = auth_headers(patient)

        assert client.post(f"/notifications/{notification_id}/read", headers=headers).status_code == 200

        body = client.get("/notifications", headers=headers).json()
        assert body["unread_count"] == 0
        assert body["notifications"][0]["is_read"] is True
        assert client.get("/notifications", params={"unread_only": True}, headers=headers).json()["notifications"] == []

    def test_cannot_mark_someone_elses_notification(self, client, db, patient, other_patient):
        notify_user(db, other_patient.id, "a", "Theirs", "Body")
        notification_id = db.query(Notification).one().id

        resp = client.post(f"/notifications/{notification_id}/read", headers=auth_headers(patient))
        assert resp.status_code == 404

    def test_mark_all_read(self, client, db, patient, other_patient):
        for i in range(3):
            notify_user(db, patient.id, "a", f"N{i}", "Body")
        notify_user(db, other_patient.id, "a", "Theirs", "Body")

        resp = client.post("/notifications/read-all", headers=auth_headers(patient))

        assert resp.json() == {"success": True, "updated": 3}
        assert db.query(Notification).filter(Notification.read_at.is_(None)).count() == 1
