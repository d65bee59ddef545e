"""Shared fixtures for the mssqladmin test suite."""

import logging

import pytest

from fakes import (
    NIGHTLY_JOB_ID,
    FakeApprovalGate,
    FakeConnectionProvider,
    FakeServiceController,
    Journal,
)
from mssqladmin.application.ports import CancellationToken
from mssqladmin.domain.models import JobHandle, Target
from mssqladmin.infrastructure.diagnostics import LoggingDiagnostics


@pytest.fixture
def journal():
    return Journal()


@pytest.fixture
def diagnostics():
    return LoggingDiagnostics(logging.getLogger("tests.diagnostics"))


@pytest.fixture
def connections(journal):
    return FakeConnectionProvider(journal)


@pytest.fixture
def services(journal):
    return FakeServiceController(journal)


@pytest.fixture
def approval(journal):
    return FakeApprovalGate(journal)


@pytest.fixture
def cancel():
    return CancellationToken()


@pytest.fixture
def default_target():
    return Target(host="sql01")


@pytest.fixture
def named_target():
    return Target(host="sql01", instance_name="DEV1")


@pytest.fixture
def nightly_job():
    return JobHandle(job_id=NIGHTLY_JOB_ID, name="NightlyETL")
