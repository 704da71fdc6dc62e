"""
Patient Model - Stores the clinic's patient records.
"""
import uuid

from sqlalchemy import Column, String, func

from ..database import Base, UTCDateTime, utcnow


class Patient(Base):
    """
    Patient Model - Stores patient-specific information

    Fields:
    - id: Opaque identifier
    - name: Patient's full name
    - address: Patient's address
    - registration_number: Unique clinic number, formatted NN.NN.NN.NN
    - birth_place: Place of birth
    - birth_day: Date of birth as YYYY-MM-DD
    - created_at / updated_at: Record timestamps
    """
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False, index=True)
    address = Column(String(500), nullable=False)
    registration_number = Column(String(11), unique=True, nullable=False, index=True)
    birth_place = Column(String(100), nullable=False)
    birth_day = Column(String(10), nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now(), index=True)
    updated_at = Column(UTCDateTime, onupdate=utcnow)

    def __repr__(self):
        """String representation of the Patient model"""
        return f"<Patient(id={self.id}, registration_number={self.registration_number})>"

    @property
    def full_birth_info(self) -> str:
        return f"{self.birth_place}, {self.birth_day}"
