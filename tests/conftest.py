"""Pytest configuration and fixtures for Portcullis tests."""

import pytest

from portcullis.core.gate import AdmissionGate
from tests.helpers import RecordingApp, SendCollector


@pytest.fixture
def gate() -> AdmissionGate:
    """Gate with small limits: 10 byte body, 256 character URL."""
    return AdmissionGate.new(max_body_bytes=10, max_url_length=256)


@pytest.fixture
def recording_app() -> RecordingApp:
    return RecordingApp()


@pytest.fixture
def send() -> SendCollector:
    return SendCollector()
