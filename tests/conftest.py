"""Shared fakes for client and pipeline tests."""

import asyncio
from typing import List, Optional, Sequence

import pytest

from gcode_report.client import AnalysisTransport, PollResponse, Submission

CURA_THREE_LAYERS = """\
;FLAVOR:Marlin
;TIME:1234
;Filament used: 0.5m
;Layer height: 0.2
;Generated with Cura_SteamEngine 5.4.0
;LAYER_COUNT:3
M140 S60
M104 S200
G28
G90
M82
G92 E0
;LAYER:0
G0 F3000 X10 Y10 Z0.2
;TYPE:WALL-OUTER
G1 F1200 X20 Y10 E1
G1 X20 Y20 E2
;TYPE:FILL
G1 F2400 X10 Y20 E3
G1 E1.5
G0 X0 Y0
;LAYER:1
M104 S210
G0 X10 Y10 Z0.4
G1 F1200 E3
;TYPE:WALL-OUTER
G1 X20 Y10 E4
G1 X20 Y20 E5
;LAYER:2
G0 X10 Y10 Z0.6
;TYPE:WALL-OUTER
G1 X20 Y10 E6
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Sleep that advances a FakeClock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class FakeTransport(AnalysisTransport):
    """Scripted transport.

    Poll responses are returned in order; the last one repeats forever.
    """

    def __init__(
        self,
        submission: Submission,
        responses: Sequence[PollResponse] = (),
        submit_error: Optional[Exception] = None,
        poll_error: Optional[Exception] = None,
    ):
        self.submission = submission
        self.responses = list(responses)
        self.submit_error = submit_error
        self.poll_error = poll_error
        self.submit_calls: List[str] = []
        self.poll_calls: List[str] = []

    async def submit(self, content: str) -> Submission:
        self.submit_calls.append(content)
        await asyncio.sleep(0)
        if self.submit_error is not None:
            raise self.submit_error
        return self.submission

    async def poll(self, analysis_id: str) -> PollResponse:
        self.poll_calls.append(analysis_id)
        await asyncio.sleep(0)
        if self.poll_error is not None:
            raise self.poll_error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture
def clock():
    """Fake clock starting at 0."""
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    """Sleep bound to the fake clock."""
    return FakeSleep(clock)


@pytest.fixture
def cura_gcode():
    """Three-layer Cura-style file."""
    return CURA_THREE_LAYERS
