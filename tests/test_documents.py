from conftest import auth_headers

from chautari import storage
from chautari.models import Document, ESignature, Notification

PDF_BYTES = b"%PDF-1.4\n% test document\n"


def upload(client, user, request_id, doc_type="insurance_card", content=PDF_BYTES, mime="application/pdf", **form):
    data = {"doc_type": doc_type, **form}
    return client.post(
        f"/switch-requests/{request_id}/documents",
        data=data,
        files={"file": ("card front.pdf", content, mime)},
        headers=auth_headers(user),
    )


class TestUpload:
    def test_patient_uploads_document(self, client, db, fake_storage, patient, switch_request):
        resp = upload(client, patient, switch_request["id"])

        assert resp.status_code == 201
        body = resp.json()
        assert body["uploader_role"] == "patient"
        assert body["display_name"] == "Insurance Card"
        assert body["file_size_bytes"] == len(PDF_BYTES)
        assert body["file_path"].startswith(f"{patient.id}/{switch_request['id']}/")
        assert body["file_path"].endswith("_card_front.pdf")
        assert fake_storage.objects[body["file_path"]]["body"] == PDF_BYTES

    def test_agency_upload_notifies_patient(self, client, db, fake_storage, patient, agency_staff, switch_request):
        resp = upload(
            client,
            agency_staff,
            switch_request["id"],
            doc_type="care_plan",
            display_name="Care plan v1",
            requires_signature="true",
        )

        assert resp.status_code == 201
        assert resp.json()["requires_signature"] is True
        notification = db.query(Notification).filter(Notification.type == "document_uploaded").one()
        assert notification.user_id == patient.id
        assert notification.title == "Document requires your signature"

    def test_rejects_unsupported_type(self, client, fake_storage, patient, switch_request):
        resp = upload(client, patient, switch_request["id"], content=b"MZ", mime="application/x-msdownload")
        assert resp.status_code == 415
        assert fake_storage.objects == {}

    def test_rejects_oversized_file(self, client, fake_storage, patient, switch_request):
        big = b"0" * (storage.MAX_DOCUMENT_SIZE_BYTES + 1)
        resp = upload(client, patient, switch_request["id"], content=big)
        assert resp.status_code == 413

    def test_rejects_unknown_doc_type(self, client, fake_storage, patient, switch_request):
        resp = upload(client, patient, switch_request["id"], doc_type="selfie")
        assert resp.status_code == 422

    def test_storage_failure_is_502(self, client, db, fake_storage, patient, switch_request):
        fake_storage.fail_uploads = True
        resp = upload(client, patient, switch_request["id"])

        assert resp.status_code == 502
        assert db.query(Document).count() == 0

    def test_outsiders_cannot_upload(self, client, fake_storage, other_patient, outside_staff, switch_request):
        assert upload(client, other_patient, switch_request["id"]).status_code == 403
        assert upload(client, outside_staff, switch_request["id"]).status_code == 403

    def test_unknown_request_is_404(self, client, fake_storage, patient):
        assert upload(client, patient, "missing").status_code == 404


class TestListAndDownload:
    def test_both_parties_see_documents(self, client, fake_storage, patient, agency_staff, switch_request):
        upload(client, patient, switch_request["id"])

        for user in (patient, agency_staff):
            resp = client.get(f"/switch-requests/{switch_request['id']}/documents", headers=auth_headers(user))
            assert resp.status_code == 200
            assert len(resp.json()) == 1

    def test_signed_url(self, client, fake_storage, patient, switch_request):
        document = upload(client, patient, switch_request["id"]).json()

        resp = client.get(f"/documents/{document['id']}/url", headers=auth_headers(patient))

        assert resp.status_code == 200
        assert resp.json()["expires_in"] == 300
        assert document["file_path"] in resp.json()["url"]

    def test_outsider_cannot_get_url(self, client, fake_storage, patient, other_patient, switch_request):
        document = upload(client, patient, switch_request["id"]).json()
        resp = client.get(f"/documents/{document['id']}/url", headers=auth_headers(other_patient))
        assert resp.status_code == 403

    def test_url_for_missing_document_is_404(self, client, fake_storage, patient):
        assert client.get("/documents/missing/url", headers=auth_headers(patient)).status_code == 404


class TestSigning:
    def test_patient_signs_document(self, client, db, fake_storage, patient, agency_staff, switch_request):
        document = upload(
            client, agency_staff, switch_request["id"], doc_type="care_plan", requires_signature="true"
        ).json()

        resp = client.post(
            f"/documents/{document['id']}/sign", json={"typed_name": "  Maya Gurung "}, headers=auth_headers(patient)
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["checksum"]) == 64

        stored = db.query(Document).filter(Document.id == document["id"]).one()
        assert stored.is_signed is True
        assert stored.typed_name == "Maya Gurung"
        assert stored.signature_checksum == body["checksum"]

        signature = db.query(ESignature).filter(ESignature.document_id == document["id"]).one()
        assert signature.signer_role == "patient"
        assert signature.checksum == body["checksum"]

        signed_note = db.query(Notification).filter(Notification.type == "document_signed").one()
        assert signed_note.user_id == agency_staff.id

    def test_second_signature_is_409(self, client, fake_storage, patient, agency_staff, switch_request):
        document = upload(
            client, agency_staff, switch_request["id"], doc_type="care_plan", requires_signature="true"
        ).json()
        url = f"/documents/{document['id']}/sign"

        assert client.post(url, json={"typed_name": "Maya Gurung"}, headers=auth_headers(patient)).status_code == 200
        assert client.post(url, json={"typed_name": "Maya Gurung"}, headers=auth_headers(patient)).status_code == 409

    def test_document_without_signature_is_409(self, client, fake_storage, patient, switch_request):
        document = upload(client, patient, switch_request["id"]).json()
        resp = client.post(
            f"/documents/{document['id']}/sign", json={"typed_name": "Maya Gurung"}, headers=auth_headers(patient)
        )
        assert resp.status_code == 409

    def test_typed_name_is_required(self, client, fake_storage, patient, agency_staff, switch_request):
        document = upload(
            client, agency_staff, switch_request["id"], doc_type="care_plan", requires_signature="true"
        ).json()
        resp = client.post(f"/documents/{document['id']}/sign", json={"typed_name": " M "}, headers=auth_headers(patient))
        assert resp.status_code == 422


class TestDelete:
    def test_uploader_deletes_document(self, client, db, fake_storage, patient, switch_request):
        document = upload(client, patient, switch_request["id"]).json()

        resp = client.delete(f"/documents/{document['id']}", headers=auth_headers(patient))

        assert resp.status_code == 200
        assert db.query(Document).count() == 0
        assert fake_storage.objects == {}

    def test_only_uploader_can_delete(self, client, fake_storage, patient, agency_staff, switch_request):
        document = upload(client, patient, switch_request["id"]).json()
        resp = client.delete(f"/documents/{document['id']}", headers=auth_headers(agency_staff))
        assert resp.status_code == 403

    def test_signed_document_cannot_be_deleted(self, client, fake_storage, patient, agency_staff, switch_request):
        document = upload(
            client, agency_staff, switch_request["id"], doc_type="care_plan", requires_signature="true"
        ).json()
        client.post(f"/documents/{document['id']}/sign", json={"typed_name": "Maya Gurung"}, headers=auth_headers(patient))

        resp = client.delete(f"/documents/{document['id']}", headers=auth_headers(agency_staff))
        assert resp.status_code == 409
