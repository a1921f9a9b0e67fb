# session.py
# EMPTY -> FILE_SELECTED -> ANALYZING -> REPORTED | FAILED; reset returns to EMPTY from anywhere.
# Transitions are pure and raise InvalidTransition on an illegal move.
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .prompts import PHASES
from .report import Report


class Stage(str, Enum):
    EMPTY = "empty"
    FILE_SELECTED = "file_selected"
    ANALYZING = "analyzing"
    REPORTED = "reported"
    FAILED = "failed"


class InvalidTransition(Exception):
    pass


@dataclass(frozen=True)
class UploadSession:
    filename: str
    size: int
    media_type: str
    # base64 of the file bytes, ready for the document block
    data: str

    @property
    def size_kb(self) -> int:
        return round(self.size / 1024)


@dataclass(frozen=True)
class DeskState:
    stage: Stage = Stage.EMPTY
    upload: Optional[UploadSession] = None
    report: Optional[Report] = None
    error: Optional[str] = None
    phase: int = 0
    # bumped whenever an in-flight analysis result would become stale
    generation: int = 0

    @property
    def phase_text(self) -> str:
        return PHASES[self.phase]


def _require(state: DeskState, *stages: Stage) -> None:
    if state.stage not in stages:
        allowed = ", ".join(s.value for s in stages)
        raise InvalidTransition(f"Cannot do that while {state.stage.value} (needs {allowed})")


def select_file(state: DeskState, upload: UploadSession) -> DeskState:
    _require(state, Stage.EMPTY, Stage.FILE_SELECTED, Stage.FAILED)
    return DeskState(stage=Stage.FILE_SELECTED, upload=upload, generation=state.generation)


def begin_analysis(state: DeskState) -> DeskState:
    _require(state, Stage.FILE_SELECTED)
    return replace(
        state,
        stage=Stage.ANALYZING,
        report=None,
        error=None,
        phase=0,
        generation=state.generation + 1,
    )


def advance_phase(state: DeskState) -> DeskState:
    _require(state, Stage.ANALYZING)
    return replace(state, phase=min(state.phase + 1, len(PHASES) - 1))


def complete(state: DeskState, report: Report) -> DeskState:
    _require(state, Stage.ANALYZING)
    return replace(state, stage=Stage.REPORTED, report=report, error=None, phase=0)


def fail(state: DeskState, message: str) -> DeskState:
    _require(state, Stage.ANALYZING)
    return replace(state, stage=Stage.FAILED, report=None, error=message, phase=0)


def reset(state: DeskState) -> DeskState:
    return DeskState(generation=state.generation + 1)
