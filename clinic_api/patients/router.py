"""
Patient routes. Every endpoint requires an authenticated user or admin.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import require_user_or_admin
from ..auth.identity import Authenticated
from ..core.pagination import PageParams
from ..core.responses import success_body
from ..database import get_db
from . import service
from .schemas import PatientCreate, PatientResponse, PatientUpdate

router = APIRouter()


@router.post("/create", status_code=status.HTTP_201_CREATED, summary="Create Patient")
async def create_patient_route(
    payload: PatientCreate,
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    patient = service.create_patient(db, payload)
    return success_body("Patient created successfully", PatientResponse.model_validate(patient))


@router.get("/total", summary="Count Patients")
async def total_patients_route(
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    return success_body("Total patients retrieved successfully", {"total": service.count_patients(db)})


@router.get("/search", summary="Search Patients By Name")
async def search_patients_route(
    page_params: PageParams = Depends(),
    q: Optional[str] = Query(None, max_length=100),
    starts_with: Optional[str] = Query(None, alias="startsWith", max_length=100),
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    page = service.search_patients(db, page_params, q=q, starts_with=starts_with)
    return success_body("Patients retrieved successfully", page)


@router.get("/search/name", summary="Search Patients By Name Only")
async def search_patients_by_name_route(
    page_params: PageParams = Depends(),
    name: Optional[str] = Query(None, max_length=100),
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    page = service.search_patients_by_name(db, page_params, name)
    total = page["pagination"].total
    return success_body(f'Found {total} patients matching name "{name}"', page)


@router.get("/search/address", summary="Search Patients By Address")
async def search_patients_by_address_route(
    page_params: PageParams = Depends(),
    address: Optional[str] = Query(None, max_length=100),
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    page = service.search_patients_by_address(db, page_params, address)
    total = page["pagination"].total
    return success_body(f'Found {total} patients in address "{address}"', page)


@router.get("/search/alphabet", summary="List Patients By Initial")
async def patients_by_letter_route(
    page_params: PageParams = Depends(),
    letter: Optional[str] = Query(None),
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    page = service.patients_by_letter(db, page_params, letter)
    total = page["pagination"].total
    return success_body(f'Found {total} patients with names starting with "{letter.upper()}"', page)


@router.get("", summary="List Patients")
async def list_patients_route(
    page_params: PageParams = Depends(),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    page = service.list_patients(db, page_params, search=search, sort_by=sort_by, sort_order=sort_order)
    return success_body("Patients retrieved successfully", page)


@router.get("/{patient_id}", summary="Get Patient")
async def get_patient_route(
    patient_id: str,
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    patient = service.get_patient(db, patient_id)
    return success_body("Patient retrieved successfully", PatientResponse.model_validate(patient))


@router.put("/{patient_id}", summary="Update Patient")
async def update_patient_route(
    patient_id: str,
    payload: PatientUpdate,
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    patient = service.update_patient(db, patient_id, payload)
    return success_body("Patient updated successfully", PatientResponse.model_validate(patient))


@router.delete("/{patient_id}", summary="Delete Patient")
async def delete_patient_route(
    patient_id: str,
    identity: Authenticated = Depends(require_user_or_admin),
    db: Session = Depends(get_db),
):
    service.delete_patient(db, patient_id)
    return success_body("Patient deleted successfully")
