"""Exports for test fakes."""

from .clock import FakeClock
from .credentials import RecordingCredential
from .http import RecordedRequest, ScriptedSession, TrackedResponse, make_response

__all__ = [
    "FakeClock",
    "RecordedRequest",
    "RecordingCredential",
    "ScriptedSession",
    "TrackedResponse",
    "make_response",
]
