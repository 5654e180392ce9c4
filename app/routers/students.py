"""
Student registration endpoints.

POST /students/registrations  - staff registers a student + primary guardian
POST /students/pre-enrollment - public pre-enrollment form
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.profile import Profile
from app.schemas.students import (
    PreEnrollmentRequest,
    PreEnrollmentResponse,
    StudentRegistrationRequest,
    StudentRegistrationResponse,
)
from app.services.registration import create_student_with_guardian, pre_enroll_student
from app.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])


@router.post("/registrations", response_model=StudentRegistrationResponse)
def register_student(
    data: StudentRegistrationRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Create a student with the next registration code for the tenant/year, plus its guardian."""
    result = create_student_with_guardian(db, current_user, data)
    return StudentRegistrationResponse(student_id=result.student_id, registration_code=result.registration_code)


@router.post("/pre-enrollment", response_model=PreEnrollmentResponse)
def pre_enrollment(
    data: PreEnrollmentRequest,
    db: Session = Depends(get_db),
):
    result = pre_enroll_student(db, data)
    return PreEnrollmentResponse(registration_code=result.registration_code)
