"""Integration tests for /students endpoints (app/routers/students.py)"""
import pytest
from datetime import date
from unittest.mock import patch

from app.models import Guardian, Student, StudentStatus
from tests.conftest import add_student, make_access_token, registration_payload, seed_school


class TestRegisterStudent:
    def test_admin_registers_student_returns_200(self, client, login_as, db_session, school):
        login_as(school.admin_id)

        response = client.post("/students/registrations", json=registration_payload(school))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["registration_code"] == "20241000"
        student = db_session.query(Student).filter(Student.id == data["studentId"]).one()
        assert student.registration_code == "20241000"
        assert db_session.query(Guardian).count() == 1

    def test_secretary_continues_tenant_sequence(self, client, login_as, db_session, school):
        add_student(db_session, "T1", "20241005")
        login_as(school.secretary_id)

        response = client.post("/students/registrations", json=registration_payload(school))

        assert response.status_code == 200
        assert response.json()["registration_code"] == "20241006"

    def test_student_role_returns_403(self, client, login_as, db_session, school):
        login_as(school.student_user_id)

        response = client.post("/students/registrations", json=registration_payload(school))

        assert response.status_code == 403
        assert "error" in response.json()
        assert db_session.query(Student).count() == 0

    def test_other_tenant_returns_403(self, client, login_as, db_session, school):
        other = seed_school(db_session, tenant_id="T2")
        login_as(other.admin_id)

        response = client.post("/students/registrations", json=registration_payload(school))

        assert response.status_code == 403

    def test_missing_required_fields_returns_400(self, client, login_as, db_session, school):
        login_as(school.admin_id)

        response = client.post("/students/registrations", json=registration_payload(school, full_name=None))

        assert response.status_code == 400
        assert "nome" in response.json()["error"]

    def test_malformed_field_returns_400(self, client, login_as, school):
        login_as(school.admin_id)
        payload = registration_payload(school)
        payload["school_year"] = "next year"

        response = client.post("/students/registrations", json=payload)

        assert response.status_code == 400
        assert "school_year" in response.json()["error"]

    def test_exhausted_allocation_returns_409(self, client, login_as, db_session, school):
        add_student(db_session, "T1", "20241000")
        login_as(school.admin_id)

        with patch("app.services.registration.next_registration_code", return_value="20241000"):
            response = client.post("/students/registrations", json=registration_payload(school))

        assert response.status_code == 409
        assert "error" in response.json()


class TestRegistrationAuth:
    def test_valid_bearer_token_resolves_profile(self, client, db_session, school):
        token = make_access_token(school.admin_id)

        response = client.post(
            "/students/registrations",
            json=registration_payload(school),
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200

    def test_invalid_token_returns_401(self, client, school):
        response = client.post(
            "/students/registrations",
            json=registration_payload(school),
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_token_for_unknown_profile_returns_401(self, client, school):
        token = make_access_token("ghost")

        response = client.post(
            "/students/registrations",
            json=registration_payload(school),
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401


class TestPreEnrollment:
    def test_public_pre_enrollment_returns_200(self, client, db_session, school):
        response = client.post("/students/pre-enrollment", json={
            "tenant_id": "T1",
            "full_name": "Pedro Alves",
            "birth_date": "2016-08-01",
            "phone": "+5511988887777",
        })

        assert response.status_code == 200
        assert response.json()["registration_code"] == f"{date.today().year}1000"
        student = db_session.query(Student).one()
        assert student.status == StudentStatus.PRE_ENROLLED

    def test_missing_phone_returns_400(self, client, school):
        response = client.post("/students/pre-enrollment", json={
            "tenant_id": "T1",
            "full_name": "Pedro Alves",
            "birth_date": "2016-08-01",
        })

        assert response.status_code == 400
        assert "telefone" in response.json()["error"]
