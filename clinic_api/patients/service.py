"""
Patient service layer: plain CRUD over the patients table.
"""
import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.pagination import PageParams, paginate
from ..exceptions import NotFoundException, ValidationError
from .models import Patient
from .schemas import PatientCreate, PatientResponse, PatientUpdate

# Set up logging
logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Patient.name,
    "address": Patient.address,
    "registrationNumber": Patient.registration_number,
    "createdAt": Patient.created_at,
    "updatedAt": Patient.updated_at,
}

LIKE_ESCAPE = "\\"


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Registration number already exists")


def create_patient(db: Session, data: PatientCreate) -> Patient:
    existing = db.query(Patient).filter(Patient.registration_number == data.registration_number).first()
    if existing:
        raise ValidationError("Registration number already exists")
    patient = Patient(**data.model_dump())
    db.add(patient)
    _commit(db)
    db.refresh(patient)
    logger.info(f"Patient created: {patient.id}")
    return patient


def _like(value: str, prefix: bool = False) -> str:
    escaped = value.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%" if prefix else f"%{escaped}%"


def _by_name(query, page_params: PageParams):
    query = query.order_by(Patient.name.asc(), Patient.id)
    return paginate(query, page_params, PatientResponse, items_key="patients")


def list_patients(
    db: Session,
    page_params: PageParams,
    search: Optional[str] = None,
    sort_by: str = "name",
    sort_order: str = "asc",
):
    query = db.query(Patient)
    if search:
        pattern = _like(search)
        query = query.filter(or_(
            Patient.name.ilike(pattern, escape=LIKE_ESCAPE),
            Patient.registration_number.ilike(pattern, escape=LIKE_ESCAPE),
            Patient.address.ilike(pattern, escape=LIKE_ESCAPE),
            Patient.birth_place.ilike(pattern, escape=LIKE_ESCAPE),
        ))
    column = SORTABLE_FIELDS.get(sort_by, Patient.name)
    ordering = column.asc() if sort_order.lower() == "asc" else column.desc()
    query = query.order_by(ordering, Patient.id)
    return paginate(query, page_params, PatientResponse, items_key="patients")


def search_patients(
    db: Session,
    page_params: PageParams,
    q: Optional[str] = None,
    starts_with: Optional[str] = None,
):
    """Name search: `q` matches anywhere in the name, `starts_with` only at its start."""
    query = db.query(Patient)
    if q:
        query = query.filter(Patient.name.ilike(_like(q), escape=LIKE_ESCAPE))
    elif starts_with:
        query = query.filter(Patient.name.ilike(_like(starts_with, prefix=True), escape=LIKE_ESCAPE))
    return _by_name(query, page_params)


def search_patients_by_name(db: Session, page_params: PageParams, name: Optional[str]):
    if not name or not name.strip():
        raise ValidationError("Name parameter is required")
    query = db.query(Patient).filter(Patient.name.ilike(_like(name), escape=LIKE_ESCAPE))
    return _by_name(query, page_params)


def search_patients_by_address(db: Session, page_params: PageParams, address: Optional[str]):
    if not address or not address.strip():
        raise ValidationError("Address parameter is required")
    query = db.query(Patient).filter(Patient.address.ilike(_like(address), escape=LIKE_ESCAPE))
    return _by_name(query, page_params)


def patients_by_letter(db: Session, page_params: PageParams, letter: Optional[str]):
    if not letter or len(letter) != 1 or not letter.isalpha():
        raise ValidationError("Single letter parameter is required")
    query = db.query(Patient).filter(Patient.name.ilike(_like(letter, prefix=True), escape=LIKE_ESCAPE))
    return _by_name(query, page_params)


def count_patients(db: Session) -> int:
    return db.query(Patient).count()


def get_patient(db: Session, patient_id: str) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if not patient:
        raise NotFoundException("Patient not found")
    return patient


def update_patient(db: Session, patient_id: str, data: PatientUpdate) -> Patient:
    patient = get_patient(db, patient_id)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(patient, field, value)
    _commit(db)
    db.refresh(patient)
    return patient


def delete_patient(db: Session, patient_id: str) -> None:
    patient = get_patient(db, patient_id)
    db.delete(patient)
    db.commit()
    logger.info(f"Patient deleted: {patient_id}")
