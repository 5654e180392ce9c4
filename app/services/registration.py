"""
Student registration and registration code allocation.

Codes are <school_year><sequence>, sequence zero-padded to 4 digits and never
below 1000. The next code is derived from the greatest existing code for the
tenant/year on every attempt; uniqueness is enforced by the
(tenant_id, registration_code) constraint, and a conflicting insert is retried
with a linear backoff. There is no in-process counter, so any number of
workers can allocate for the same tenant.
"""
import logging
import random
import time
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import (
    AllocationExhausted,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from app.models.profile import Profile, UserRole
from app.models.student import (
    REGISTRATION_CODE_CONSTRAINT,
    Guardian,
    Student,
    StudentGuardian,
    StudentStatus,
)
from app.models.tenant import Tenant, TenantStatus
from app.schemas.students import PreEnrollmentRequest, StudentInfo, StudentRegistrationRequest

logger = logging.getLogger(__name__)

MIN_SEQUENCE = 1000
SEQUENCE_WIDTH = 4

REGISTRATION_ROLES = {UserRole.ADMIN, UserRole.SECRETARY}

STUDENT_REQUIRED_FIELDS = {
    "full_name": "nome",
    "birth_date": "data de nascimento",
    "class_id": "turma",
    "course_id": "série/ano",
}
GUARDIAN_REQUIRED_FIELDS = {
    "full_name": "nome",
    "relationship": "parentesco",
}
PRE_ENROLLMENT_REQUIRED_FIELDS = {
    "full_name": "nome",
    "birth_date": "data de nascimento",
    "phone": "telefone",
}

# Columns copied from the student payload onto the Student row
STUDENT_COLUMNS = tuple(StudentInfo.model_fields)


@dataclass
class RegistrationResult:
    student_id: str
    registration_code: str


def format_registration_code(prefix: str, sequence: int) -> str:
    return f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"


def next_registration_code(db: Session, tenant_id: str, school_year: int) -> str:
    """Compute the next free-looking code for the tenant/year from the store."""
    prefix = str(school_year)

    codes = (
        db.query(Student.registration_code)
        .filter(
            Student.tenant_id == tenant_id,
            Student.registration_code.like(f"{prefix}%"),
        )
        .all()
    )

    # Only numeric suffixes take part; legacy codes like "2024-TRANSF-01" are skipped.
    # Comparing as integers keeps "202410000" above "20249999" once the sequence widens.
    sequences = []
    for (code,) in codes:
        suffix = code[len(prefix):]
        if suffix.isdigit() and suffix.isascii():
            sequences.append(int(suffix))
        else:
            logger.debug("Skipping non-sequential registration code %s for tenant %s", code, tenant_id)

    next_sequence = max(sequences) + 1 if sequences else 1
    if next_sequence < MIN_SEQUENCE:
        next_sequence = MIN_SEQUENCE

    return format_registration_code(prefix, next_sequence)


def is_registration_code_conflict(exc: IntegrityError) -> bool:
    """True when the integrity error is the (tenant_id, registration_code) unique violation."""
    message = str(exc.orig)
    if REGISTRATION_CODE_CONSTRAINT in message:
        return True
    # SQLite reports the columns instead of the constraint name
    return "UNIQUE constraint failed" in message and "students.registration_code" in message


def _backoff(attempt: int) -> None:
    delay_ms = settings.registration_backoff_ms * attempt
    if settings.registration_backoff_jitter_ms:
        delay_ms += random.uniform(0, settings.registration_backoff_jitter_ms)
    if delay_ms > 0:
        time.sleep(delay_ms / 1000)


def _missing_fields(data, required: dict) -> list:
    return [label for field, label in required.items() if getattr(data, field, None) in (None, "")]


def _insert_student_with_code(db: Session, tenant_id: str, school_year: int, student_fields: dict) -> Student:
    """
    Insert a student with a freshly allocated code, retrying on code conflicts.

    The student is flushed, not committed: callers add the remaining rows and
    commit them together.
    """
    max_attempts = settings.registration_max_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            code = next_registration_code(db, tenant_id, school_year)
            student = Student(
                tenant_id=tenant_id,
                school_year=school_year,
                registration_code=code,
                **student_fields,
            )
            db.add(student)
            db.flush()
        except IntegrityError as e:
            db.rollback()
            if not is_registration_code_conflict(e):
                logger.error("Student insert failed for tenant %s: %s", tenant_id, e.orig)
                raise PersistenceError(f"Erro ao cadastrar aluno: {e.orig}") from e
            logger.warning(
                "Attempt %s/%s: registration code %s already taken for tenant %s, retrying",
                attempt, max_attempts, code, tenant_id,
            )
            if attempt < max_attempts:
                _backoff(attempt)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Student insert failed for tenant %s: %s", tenant_id, e)
            raise PersistenceError(f"Erro ao cadastrar aluno: {e}") from e

        logger.info("Allocated registration code %s for tenant %s (attempt %s)", code, tenant_id, attempt)
        return student

    raise AllocationExhausted(
        f"Falha ao gerar um código de matrícula único após {max_attempts} tentativas."
    )


def create_student_with_guardian(
    db: Session,
    actor: Profile,
    request: StudentRegistrationRequest,
) -> RegistrationResult:
    """
    Register a student and their primary guardian.

    Student, guardian and link are committed in one transaction: if the
    guardian or the link cannot be written the student row is rolled back
    as well.
    """
    if actor.role not in REGISTRATION_ROLES:
        raise PermissionDeniedError("Apenas administradores e secretaria podem cadastrar alunos.")

    if not request.tenant_id or not request.school_year or request.student is None or request.guardian is None:
        raise ValidationError("Dados incompletos para aluno, escola ou responsável.")

    missing = _missing_fields(request.student, STUDENT_REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Campos obrigatórios do aluno ausentes: {', '.join(missing)}.")
    missing = _missing_fields(request.guardian, GUARDIAN_REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Campos obrigatórios do responsável ausentes: {', '.join(missing)}.")

    if actor.tenant_id != request.tenant_id:
        raise PermissionDeniedError("Você não tem permissão para cadastrar alunos nesta escola.")

    student_fields = request.student.model_dump(include=set(STUDENT_COLUMNS))
    student_fields["status"] = StudentStatus.ACTIVE

    student = _insert_student_with_code(db, request.tenant_id, request.school_year, student_fields)

    guardian_info = request.guardian
    try:
        guardian = Guardian(
            tenant_id=request.tenant_id,
            full_name=guardian_info.full_name,
            relationship_type=guardian_info.relationship,
            phone=guardian_info.phone,
            email=guardian_info.email,
            cpf=guardian_info.cpf,
        )
        db.add(guardian)
        db.flush()

        db.add(StudentGuardian(student_id=student.id, guardian_id=guardian.id, is_primary=True))
        db.flush()

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Guardian registration failed for tenant %s, student rolled back: %s", request.tenant_id, e)
        raise PersistenceError(f"Erro ao cadastrar responsável: {e}") from e

    logger.info(
        "Registered student %s (%s) with guardian %s for tenant %s",
        student.id, student.registration_code, guardian.id, request.tenant_id,
    )
    return RegistrationResult(student_id=student.id, registration_code=student.registration_code)


def pre_enroll_student(
    db: Session,
    request: PreEnrollmentRequest,
    today: Optional[date] = None,
) -> RegistrationResult:
    """Public pre-enrollment: a pre-enrolled student for the current year, no guardian."""
    if not request.tenant_id:
        raise ValidationError("Identificador da escola (tenant_id) ausente.")

    missing = _missing_fields(request, PRE_ENROLLMENT_REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Campos obrigatórios ausentes: {', '.join(missing)}.")

    tenant = db.query(Tenant).filter(Tenant.id == request.tenant_id).first()
    if tenant is None:
        raise ValidationError("Escola não encontrada.")
    if tenant.status == TenantStatus.SUSPENDED:
        raise PermissionDeniedError("Esta escola não está aceitando pré-matrículas.")

    school_year = (today or date.today()).year
    student_fields = request.model_dump(include=set(STUDENT_COLUMNS))
    student_fields["status"] = StudentStatus.PRE_ENROLLED

    student = _insert_student_with_code(db, request.tenant_id, school_year, student_fields)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Pre-enrollment commit failed for tenant %s: %s", request.tenant_id, e)
        raise PersistenceError(f"Erro no banco de dados: {e}") from e

    logger.info("Pre-enrolled student %s (%s) for tenant %s", student.id, student.registration_code, tenant.id)
    return RegistrationResult(student_id=student.id, registration_code=student.registration_code)
