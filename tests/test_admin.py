from conftest import auth_headers, create_agency, create_profile

from chautari.models import Agency, AgencyMember, AuditLog, Profile, SwitchRequest

NEW_AGENCY = {
    "npi": "1234567893",
    "name": "Three Rivers Home Health",
    "address_line1": "500 Grant Street",
    "address_city": "Pittsburgh",
    "address_zip": "15219",
    "phone": "412-555-0188",
    "care_types": ["home_health"],
    "payers_accepted": ["medicare", "medicaid"],
    "languages_spoken": ["en", "ne"],
    "service_counties": ["allegheny"],
}


class TestAccess:
    def test_non_admins_are_forbidden(self, client, patient, agency_admin):
        for user in (patient, agency_admin):
            assert client.get("/admin/stats", headers=auth_headers(user)).status_code == 403


class TestStats:
    def test_platform_stats(self, client, db, admin, patient, agency, switch_request):
        create_agency(db, name="Waiting Approval", is_approved=False)
        create_agency(db, name="Closed", is_active=False)
        agency.avg_response_hours = 3.0
        db.commit()
        create_agency(db, name="Fast", avg_response_hours=4.25)

        resp = client.get("/admin/stats", headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json() == {
            "total_users": 2,
            "total_patients": 1,
            "total_agencies": 3,
            "pending_agency_approvals": 1,
            "total_requests": 1,
            "active_requests": 1,
            "completed_requests": 0,
            "requests_this_month": 1,
            "avg_response_hours": 3.6,
        }

    def test_average_is_null_without_data(self, client, admin):
        assert client.get("/admin/stats", headers=auth_headers(admin)).json()["avg_response_hours"] is None


class TestUsers:
    def test_list_users_with_filters(self, client, db, admin, patient, other_patient, agency_staff):
        headers = auth_headers(admin)

        everyone = client.get("/admin/users", headers=headers).json()
        assert everyone["total"] == 4

        patients = client.get("/admin/users", params={"role": "patient"}, headers=headers).json()
        assert {u["full_name"] for u in patients["users"]} == {"Maya Gurung", "Ram Thapa"}

        searched = client.get("/admin/users", params={"search": "thapa"}, headers=headers).json()
        assert [u["full_name"] for u in searched["users"]] == ["Ram Thapa"]

        paged = client.get("/admin/users", params={"limit": 1, "offset": 1}, headers=headers).json()
        assert paged["total"] == 4
        assert len(paged["users"]) == 1

    def test_set_role_writes_audit(self, client, db, admin, patient):
        resp = client.patch(f"/admin/users/{patient.id}/role", json={"role": "agency_staff"}, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json()["role"] == "agency_staff"
        audit = db.query(AuditLog).filter(AuditLog.action == "update_role").one()
        assert audit.resource == "profiles"
        assert audit.old_data == {"role": "patient"}
        assert audit.new_data == {"role": "agency_staff"}
        assert audit.actor_id == admin.id

    def test_set_role_validates_input(self, client, admin, patient):
        headers = auth_headers(admin)
        assert client.patch(f"/admin/users/{patient.id}/role", json={"role": "superuser"}, headers=headers).status_code == 422
        assert client.patch("/admin/users/missing/role", json={"role": "patient"}, headers=headers).status_code == 404


class TestAgencies:
    def test_create_agency_starts_unapproved(self, client, db, admin):
        resp = client.post("/admin/agencies", json=NEW_AGENCY, headers=auth_headers(admin))

        assert resp.status_code == 201
        body = resp.json()
        assert body["is_active"] is True
        assert body["is_approved"] is False

        stored = db.query(Agency).filter(Agency.npi == "1234567893").one()
        assert stored.phone == "+14125550188"
        assert stored.service_counties == ["Allegheny"]
        assert db.query(AuditLog).filter(AuditLog.action == "create_agency").count() == 1

    def test_duplicate_npi_is_409(self, client, db, admin):
        create_agency(db, npi="1234567893")
        assert client.post("/admin/agencies", json=NEW_AGENCY, headers=auth_headers(admin)).status_code == 409

    def test_invalid_npi_is_422(self, client, admin):
        payload = {**NEW_AGENCY, "npi": "12345"}
        assert client.post("/admin/agencies", json=payload, headers=auth_headers(admin)).status_code == 422

    def test_list_agencies_by_status_with_counts(self, client, db, admin, agency, agency_staff, switch_request):
        create_agency(db, name="Pending Care", is_approved=False)
        create_agency(db, name="Closed Care", is_active=False, is_approved=False)
        headers = auth_headers(admin)

        approved = client.get("/admin/agencies", params={"status": "approved"}, headers=headers).json()
        assert [a["name"] for a in approved["agencies"]] == ["Sunrise Home Care"]
        assert approved["agencies"][0]["member_count"] == 1
        assert approved["agencies"][0]["request_count"] == 1

        pending = client.get("/admin/agencies", params={"status": "pending"}, headers=headers).json()
        assert [a["name"] for a in pending["agencies"]] == ["Pending Care"]

        inactive = client.get("/admin/agencies", params={"status": "inactive"}, headers=headers).json()
        assert [a["name"] for a in inactive["agencies"]] == ["Closed Care"]

        assert client.get("/admin/agencies", params={"status": "bogus"}, headers=headers).status_code == 422

    def test_approve_and_deactivate(self, client, db, admin):
        pending = create_agency(db, name="Pending Care", is_approved=False)
        headers = auth_headers(admin)

        approved = client.post(f"/admin/agencies/{pending.id}/approve", headers=headers).json()
        assert approved["is_approved"] is True and approved["is_active"] is True

        deactivated = client.post(f"/admin/agencies/{pending.id}/deactivate", headers=headers).json()
        assert deactivated["is_approved"] is False and deactivated["is_active"] is False

        audit = db.query(AuditLog).filter(AuditLog.action == "deactivate_agency").one()
        assert audit.old_data == {"is_active": True, "is_approved": True}
        assert audit.new_data == {"is_active": False}

    def test_toggle_verified_partner(self, client, db, admin, agency):
        resp = client.post(
            f"/admin/agencies/{agency.id}/verified-partner", json={"is_verified": True}, headers=auth_headers(admin)
        )

        assert resp.json()["is_verified_partner"] is True
        audit = db.query(AuditLog).filter(AuditLog.action == "toggle_verified_partner").one()
        assert audit.old_data == {"is_verified_partner": False}

    def test_audit_records_values_before_the_write(self, client, db, admin, agency):
        headers = auth_headers(admin)
        agency.is_active = False
        agency.is_verified_partner = True
        db.commit()

        client.post(f"/admin/agencies/{agency.id}/approve", headers=headers)
        client.post(f"/admin/agencies/{agency.id}/verified-partner", json={"is_verified": True}, headers=headers)

        approve = db.query(AuditLog).filter(AuditLog.action == "approve_agency").one()
        assert approve.old_data == {"is_approved": True, "is_active": False}
        toggle = db.query(AuditLog).filter(AuditLog.action == "toggle_verified_partner").one()
        assert toggle.old_data == {"is_verified_partner": True}
        assert toggle.new_data == {"is_verified_partner": True}

    def test_actions_on_missing_agency_are_404(self, client, admin):
        headers = auth_headers(admin)
        assert client.post("/admin/agencies/missing/approve", headers=headers).status_code == 404
        assert client.post("/admin/agencies/missing/deactivate", headers=headers).status_code == 404
        assert (
            client.post("/admin/agencies/missing/verified-partner", json={"is_verified": True}, headers=headers).status_code
            == 404
        )

    def test_add_member_promotes_profile(self, client, db, admin, agency):
        user = create_profile(db, full_name="New Coordinator")

        resp = client.post(
            f"/admin/agencies/{agency.id}/members",
            json={"user_id": user.id, "role": "admin", "title": "Director"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 201
        assert resp.json()["invited_by"] == admin.id
        membership = db.query(AgencyMember).filter(AgencyMember.user_id == user.id).one()
        assert membership.role == "admin"
        promoted = db.query(Profile).filter(Profile.id == user.id).one()
        db.refresh(promoted)
        assert promoted.role == "agency_admin"

    def test_add_member_reactivates_existing(self, client, db, admin, agency, agency_staff):
        db.query(AgencyMember).filter(AgencyMember.user_id == agency_staff.id).update({"is_active": False})
        db.commit()

        resp = client.post(
            f"/admin/agencies/{agency.id}/members", json={"user_id": agency_staff.id}, headers=auth_headers(admin)
        )

        assert resp.status_code == 201
        assert resp.json()["is_active"] is True
        assert db.query(AgencyMember).filter(AgencyMember.user_id == agency_staff.id).count() == 1

    def test_add_member_missing_user_or_agency(self, client, admin, agency, patient):
        headers = auth_headers(admin)
        assert (
            client.post(f"/admin/agencies/{agency.id}/members", json={"user_id": "missing"}, headers=headers).status_code
            == 404
        )
        assert (
            client.post("/admin/agencies/missing/members", json={"user_id": patient.id}, headers=headers).status_code
            == 404
        )


class TestRequestsAndAudit:
    def test_list_requests_with_names(self, client, admin, switch_request):
        resp = client.get("/admin/requests", headers=auth_headers(admin))

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["requests"][0]["patient_name"] == "Maya Gurung"
        assert body["requests"][0]["agency_name"] == "Sunrise Home Care"

        filtered = client.get("/admin/requests", params={"status": "completed"}, headers=auth_headers(admin)).json()
        assert filtered == {"requests": [], "total": 0}

    def test_assign_case_manager(self, client, db, admin, switch_request):
        resp = client.post(f"/admin/requests/{switch_request['id']}/assign", headers=auth_headers(admin))

        assert resp.status_code == 200
        stored = db.query(SwitchRequest).filter(SwitchRequest.id == switch_request["id"]).one()
        assert stored.case_manager_id == admin.id
        assert db.query(AuditLog).filter(AuditLog.action == "assign_case_manager").count() == 1

    def test_assign_missing_request_is_404(self, client, admin):
        assert client.post("/admin/requests/missing/assign", headers=auth_headers(admin)).status_code == 404

    def test_audit_log_listing(self, client, admin, patient, switch_request):
        client.patch(f"/admin/users/{patient.id}/role", json={"role": "patient"}, headers=auth_headers(admin))

        everything = client.get("/admin/audit-logs", headers=auth_headers(admin)).json()
        assert everything["total"] == 2
        assert everything["logs"][0]["action"] == "update_role"

        profiles_only = client.get("/admin/audit-logs", params={"resource": "profiles"}, headers=auth_headers(admin)).json()
        assert [log["action"] for log in profiles_only["logs"]] == ["update_role"]
