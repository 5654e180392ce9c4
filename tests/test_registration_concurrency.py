"""Concurrent registration code allocation against a real unique constraint"""
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from app.models import Profile, Student, UserRole
from app.schemas.students import StudentRegistrationRequest
from app.services import registration
from app.services.registration import create_student_with_guardian
from tests.conftest import make_session_factory, registration_payload, seed_school


CALLERS = 8


def test_parallel_registrations_collide_and_retry(serialized_engine, monkeypatch):
    # Each conflict is caused by another caller's commit, so CALLERS attempts always suffice
    monkeypatch.setattr(registration.settings, "registration_max_attempts", CALLERS)
    SessionFactory = make_session_factory(serialized_engine)
    with SessionFactory() as db:
        school = seed_school(db)

    actor = Profile(id=school.admin_id, role=UserRole.ADMIN, tenant_id=school.tenant_id, email="admin@t1.test")
    real_next = registration.next_registration_code
    barrier = threading.Barrier(CALLERS, timeout=30)
    first_read_done = set()
    lock = threading.Lock()
    issued = []

    def racing_next(session, tenant_id, school_year):
        # Read the current max on its own connection so the caller's insert
        # transaction has not started yet, then hold every caller until all of
        # them have read the same max on their first attempt.
        with SessionFactory() as reader:
            code = real_next(reader, tenant_id, school_year)
        thread_id = threading.get_ident()
        with lock:
            issued.append(code)
            first_attempt = thread_id not in first_read_done
            first_read_done.add(thread_id)
        if first_attempt:
            barrier.wait()
        return code

    def register(i):
        db = SessionFactory()
        try:
            request = StudentRegistrationRequest.model_validate(
                registration_payload(school, full_name=f"Aluno {i}")
            )
            return create_student_with_guardian(db, actor, request).registration_code
        finally:
            db.close()

    with patch("app.services.registration.next_registration_code", side_effect=racing_next):
        with ThreadPoolExecutor(max_workers=CALLERS) as pool:
            codes = list(pool.map(register, range(CALLERS)))

    # Everybody computed the same code on the first round: one winner, the rest retried
    assert issued[:CALLERS] == ["20241000"] * CALLERS
    assert len(issued) > CALLERS

    assert len(codes) == len(set(codes)) == CALLERS
    assert sorted(codes) == [f"2024{seq}" for seq in range(1000, 1000 + CALLERS)]

    with SessionFactory() as db:
        stored = [code for (code,) in db.query(Student.registration_code).all()]
    assert sorted(stored) == sorted(codes)
