"""Tests for the authorization predicate."""

from uuid import uuid4

import pytest

from app.scheduling.permissions import (
    SYSTEM_PRINCIPAL,
    Operation,
    Principal,
    Role,
    authorize,
    role_can,
)

PATIENT_ID = uuid4()
DOCTOR_ID = uuid4()

patient = Principal(user_id=uuid4(), role=Role.PATIENT, profile_id=PATIENT_ID)
other_patient = Principal(user_id=uuid4(), role=Role.PATIENT, profile_id=uuid4())
doctor = Principal(user_id=uuid4(), role=Role.DOCTOR, profile_id=DOCTOR_ID)
other_doctor = Principal(user_id=uuid4(), role=Role.DOCTOR, profile_id=uuid4())
admin = Principal(user_id=uuid4(), role=Role.ADMIN)
technician = Principal(user_id=uuid4(), role=Role.TECHNICIAN)

appointment = {"patient_id": PATIENT_ID, "doctor_id": DOCTOR_ID}

SCOPED = [Operation.VIEW, Operation.UPDATE_STATUS, Operation.RESCHEDULE]


@pytest.mark.parametrize("operation", SCOPED)
def test_participants_and_admin_act_on_appointment(operation):
    assert authorize(patient, operation, appointment)
    assert authorize(doctor, operation, appointment)
    assert authorize(admin, operation, appointment)


@pytest.mark.parametrize("operation", SCOPED)
def test_strangers_are_denied(operation):
    assert not authorize(other_patient, operation, appointment)
    assert not authorize(other_doctor, operation, appointment)


def test_patient_creates_only_for_self():
    assert authorize(patient, Operation.CREATE, {"patient_id": PATIENT_ID})
    assert not authorize(patient, Operation.CREATE, {"patient_id": uuid4()})
    assert not authorize(patient, Operation.CREATE)


def test_staff_create_for_any_patient():
    assert authorize(doctor, Operation.CREATE, {"patient_id": uuid4()})
    assert authorize(admin, Operation.CREATE, {"patient_id": uuid4()})


def test_only_treating_doctor_adds_notes():
    assert authorize(doctor, Operation.ADD_NOTES, appointment)
    assert not authorize(other_doctor, Operation.ADD_NOTES, appointment)
    assert not authorize(patient, Operation.ADD_NOTES, appointment)
    assert not authorize(admin, Operation.ADD_NOTES, appointment)


@pytest.mark.parametrize(
    "operation",
    [Operation.LIST, Operation.VIEW_AVAILABILITY, Operation.VIEW_STATISTICS],
)
def test_unscoped_operations(operation):
    for principal in (patient, doctor, admin):
        assert authorize(principal, operation)
    assert not authorize(technician, operation)


@pytest.mark.parametrize("operation", list(Operation))
def test_technician_is_denied_everything(operation):
    assert not role_can(Role.TECHNICIAN, operation)
    assert not authorize(technician, operation, appointment)


def test_profile_less_patient_owns_nothing():
    orphan = Principal(user_id=uuid4(), role=Role.PATIENT)

    assert not authorize(orphan, Operation.VIEW, {"patient_id": None, "doctor_id": DOCTOR_ID})


def test_system_principal_only_updates_status():
    assert authorize(SYSTEM_PRINCIPAL, Operation.UPDATE_STATUS, appointment)
    assert authorize(SYSTEM_PRINCIPAL, Operation.VIEW, appointment)
    assert not authorize(SYSTEM_PRINCIPAL, Operation.CREATE, appointment)
    assert not authorize(SYSTEM_PRINCIPAL, Operation.RESCHEDULE, appointment)
