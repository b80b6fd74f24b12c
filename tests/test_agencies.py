import pytest
from conftest import auth_headers, create_agency
from fastapi import HTTPException

from chautari.domain.agencies import service as agency_service
from chautari.domain.agencies.service import parse_npi_record

NPI_RECORD = {
    "number": "1234567893",
    "basic": {"organization_name": "SUNRISE HOME CARE LLC"},
    "addresses": [
        {
            "address_purpose": "MAILING",
            "address_1": "PO BOX 1",
            "city": "HARRISBURG",
            "state": "PA",
            "postal_code": "171010000",
        },
        {
            "address_purpose": "LOCATION",
            "address_1": "100 MARKET ST",
            "city": "HARRISBURG",
            "state": "PA",
            "postal_code": "171010000",
            "telephone_number": "717-555-0100",
        },
    ],
    "taxonomies": [
        {"desc": "Case Management", "primary": False},
        {"desc": "Home Health", "primary": True},
    ],
}


class TestDirectorySearch:
    def test_search_filters_by_county_payer_and_language(self, client, db):
        create_agency(db, name="Dauphin Care", service_counties=["Dauphin"], payers_accepted=["medicaid"])
        create_agency(db, name="Lancaster Care", service_counties=["Lancaster"], payers_accepted=["medicaid"])
        create_agency(db, name="Private Only", service_counties=["Dauphin"], payers_accepted=["private"])
        create_agency(
            db,
            name="English Only",
            service_counties=["Dauphin"],
            payers_accepted=["medicaid"],
            languages_spoken=["en"],
        )

        resp = client.get("/agencies", params={"county": "Dauphin", "payer_type": "medicaid", "language": "ne"})

        assert resp.status_code == 200
        assert [a["name"] for a in resp.json()["agencies"]] == ["Dauphin Care"]
        assert resp.json()["total"] == 1

    def test_all_means_no_filter(self, client, db):
        create_agency(db, name="A Care")
        create_agency(db, name="B Care", service_counties=["Erie"])

        resp = client.get("/agencies", params={"county": "all", "care_type": "all"})
        assert resp.json()["total"] == 2

    def test_care_type_both_matches_any_request(self, client, db):
        create_agency(db, name="Full Service", care_types=["both"])
        create_agency(db, name="Non Medical", care_types=["home_care"])

        resp = client.get("/agencies", params={"care_type": "home_health"})
        assert [a["name"] for a in resp.json()["agencies"]] == ["Full Service"]

    def test_services_match_any(self, client, db):
        create_agency(db, name="Nursing", services_offered=["skilled_nursing"])
        create_agency(db, name="Companions", services_offered=["companionship"])

        resp = client.get("/agencies", params=[("services", "skilled_nursing"), ("services", "respite")])
        assert [a["name"] for a in resp.json()["agencies"]] == ["Nursing"]

    def test_inactive_agencies_are_hidden(self, client, db):
        create_agency(db, name="Closed Care", is_active=False)
        assert client.get("/agencies").json()["total"] == 0

    def test_ordering_verified_then_quality_then_name(self, client, db):
        create_agency(db, name="Zeta", medicare_quality_score=4.9)
        create_agency(db, name="Alpha", medicare_quality_score=None)
        create_agency(db, name="Beta", medicare_quality_score=3.0)
        create_agency(db, name="Partner", is_verified_partner=True, medicare_quality_score=2.0)

        names = [a["name"] for a in client.get("/agencies").json()["agencies"]]
        assert names == ["Partner", "Zeta", "Beta", "Alpha"]

    def test_name_query_and_pagination(self, client, db):
        for i in range(5):
            create_agency(db, name=f"Valley Care {i}")
        create_agency(db, name="Mountain Care")

        resp = client.get("/agencies", params={"query": "valley", "page": 2, "page_size": 2})
        body = resp.json()
        assert body["total"] == 5
        assert [a["name"] for a in body["agencies"]] == ["Valley Care 2", "Valley Care 3"]

    def test_page_size_is_capped(self, client):
        assert client.get("/agencies", params={"page_size": 500}).status_code == 422


class TestAgencyDetail:
    def test_get_agency(self, client, agency):
        resp = client.get(f"/agencies/{agency.id}")
        assert resp.status_code == 200
        assert resp.json()["npi"] == agency.npi

    def test_unknown_agency_is_404(self, client):
        assert client.get("/agencies/does-not-exist").status_code == 404

    def test_matched_agencies_use_patient_details(self, client, db, patient):
        from chautari.models import PatientDetails

        db.add(
            PatientDetails(
                patient_id=patient.id,
                address_county="Lancaster",
                payer_type="medicaid",
                care_needs=[],
            )
        )
        db.commit()
        create_agency(db, name="Dauphin Care", service_counties=["Dauphin"])
        create_agency(db, name="Lancaster Care", service_counties=["Lancaster"])

        resp = client.get("/agencies/matched", headers=auth_headers(patient))
        assert [a["name"] for a in resp.json()["agencies"]] == ["Lancaster Care"]


class TestNPILookup:
    def test_parse_prefers_location_address_and_primary_taxonomy(self):
        result = parse_npi_record(NPI_RECORD)

        assert result.found is True
        assert result.name == "SUNRISE HOME CARE LLC"
        assert result.address == "100 MARKET ST, HARRISBURG, PA 17101"
        assert result.phone == "717-555-0100"
        assert result.taxonomy == "Home Health"

    def test_parse_empty_record(self):
        assert parse_npi_record(None).found is False

    def test_lookup_endpoint(self, client, monkeypatch):
        calls = []

        async def fake_fetch(npi):
            calls.append(npi)
            return NPI_RECORD

        monkeypatch.setattr(agency_service, "fetch_npi_record", fake_fetch)
        resp = client.get("/agencies/npi/1234567893")

        assert resp.status_code == 200
        assert resp.json()["found"] is True
        assert calls == ["1234567893"]

    def test_lookup_not_found(self, client, monkeypatch):
        async def fake_fetch(npi):
            return None

        monkeypatch.setattr(agency_service, "fetch_npi_record", fake_fetch)
        resp = client.get("/agencies/npi/1234567893")
        assert resp.json() == {"found": False, "name": None, "address": None, "phone": None, "taxonomy": None}

    @pytest.mark.parametrize("npi", ["123", "12345678901", "abcdefghij"])
    def test_invalid_npi_is_400(self, client, npi):
        assert client.get(f"/agencies/npi/{npi}").status_code == 400

    def test_registry_outage_is_502(self, client, monkeypatch):
        async def fake_fetch(npi):
            raise HTTPException(status_code=502, detail="NPI registry temporarily unavailable")

        monkeypatch.setattr(agency_service, "fetch_npi_record", fake_fetch)
        assert client.get("/agencies/npi/1234567893").status_code == 502
