"""Read-only lookups of users, patients and doctors."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundException
from app.core.redis_client import CacheManager
from app.models import doctors, patients, users
from app.schemas.doctors import DoctorProfile


class DirectoryService:
    """Service for the identity and profile records the scheduler depends on."""

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        cache_ttl: int | None = None,
    ):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager
        self.cache_ttl = cache_ttl or settings.doctor_cache_ttl

    @staticmethod
    def _get_doctor_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for a doctor's availability profile."""
        return f"doctor:availability:{doctor_id}"

    async def get_user(self, user_id: UUID) -> dict | None:
        """Get user by ID."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_patient(self, patient_id: UUID) -> dict | None:
        """Get patient profile by ID."""
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def get_active_patient(self, patient_id: UUID) -> dict:
        """
        Get a patient whose user account is active.

        Raises:
            NotFoundException: If the patient does not exist or the account is deactivated
        """
        query = (
            select(patients)
            .join(users, patients.c.user_id == users.c.id)
            .where(patients.c.id == patient_id, users.c.is_active.is_(True))
        )
        result = await self.db.execute(query)
        patient = result.mappings().first()
        if not patient:
            raise NotFoundException("Patient not found")
        return dict(patient)

    async def get_patient_by_user_id(self, user_id: UUID) -> dict | None:
        """Get the patient profile owned by a user."""
        result = await self.db.execute(select(patients).where(patients.c.user_id == user_id))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def get_doctor_by_user_id(self, user_id: UUID) -> dict | None:
        """Get the doctor profile owned by a user."""
        result = await self.db.execute(select(doctors).where(doctors.c.user_id == user_id))
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def get_doctor(self, doctor_id: UUID) -> DoctorProfile | None:
        """
        Get a doctor's availability profile with caching.

        A doctor counts as active only when both the doctor profile and the
        owning user account are active.
        """
        if self.cache:
            cached = self.cache.get_json(self._get_doctor_cache_key(doctor_id))
            if cached:
                return DoctorProfile.model_validate(cached)

        query = (
            select(doctors, users.c.is_active.label("user_is_active"))
            .join(users, doctors.c.user_id == users.c.id)
            .where(doctors.c.id == doctor_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()

        if not row:
            return None

        doctor = dict(row)
        doctor["is_active"] = bool(doctor["is_active"]) and bool(doctor.pop("user_is_active"))
        profile = DoctorProfile.from_row(doctor, default_timezone=settings.default_doctor_timezone)

        if self.cache:
            self.cache.set_json(
                self._get_doctor_cache_key(doctor_id),
                profile.model_dump(mode="json"),
                ttl=self.cache_ttl,
            )

        return profile

    async def get_active_doctor(self, doctor_id: UUID) -> DoctorProfile:
        """
        Get a doctor that can be shown to patients.

        Raises:
            NotFoundException: If the doctor does not exist or is inactive
        """
        profile = await self.get_doctor(doctor_id)
        if profile is None or not profile.is_active:
            raise NotFoundException("Doctor not found")
        return profile

    async def get_participant_user_ids(
        self,
        patient_id: UUID,
        doctor_id: UUID,
    ) -> tuple[UUID | None, UUID | None]:
        """Return the user IDs behind a patient and a doctor profile."""
        patient = await self.get_patient(patient_id)
        doctor_user = await self.db.execute(
            select(doctors.c.user_id).where(doctors.c.id == doctor_id)
        )
        return (
            patient["user_id"] if patient else None,
            doctor_user.scalar_one_or_none(),
        )
