# desk.py
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from . import session, settings, workflows
from .model_client import ModelClient
from .session import (
    DeskState,
    InvalidTransition,
    Stage,
    UploadSession,
    advance_phase,
    begin_analysis,
    complete,
    fail,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailDraft:
    include_attention: bool = False
    include_missing: bool = False
    text: str = ""
    generating: bool = False


class LeaseDesk:
    """Owns the single active review session.

    Transitions are applied here; results that arrive after a reset (or after a
    newer analysis started) are dropped by comparing generations.
    """

    def __init__(self, client: ModelClient, phase_interval: float = settings.PHASE_INTERVAL_SECONDS) -> None:
        self.client = client
        self.phase_interval = phase_interval
        self.state = DeskState()
        self.email = EmailDraft()
        self._task: Optional[asyncio.Task] = None

    def _current(self, generation: int) -> bool:
        return self.state.generation == generation

    def select_file(self, upload: UploadSession) -> DeskState:
        self.state = session.select_file(self.state, upload)
        self.email = EmailDraft()
        logger.info("Selected %s (%s, %d bytes)", upload.filename, upload.media_type, upload.size)
        return self.state

    def reset(self) -> DeskState:
        self.state = session.reset(self.state)
        self.email = EmailDraft()
        return self.state

    def start_analysis(self) -> asyncio.Task:
        self.state = begin_analysis(self.state)
        self.email = EmailDraft()
        logger.info("Analyzing %s", self.state.upload.filename)
        self._task = asyncio.create_task(self._run(self.state.generation, self.state.upload))
        return self._task

    async def analyze(self) -> DeskState:
        # the analysis outlives a caller that stops waiting
        await asyncio.shield(self.start_analysis())
        return self.state

    async def _run(self, generation: int, upload: UploadSession) -> None:
        async with asyncio.TaskGroup() as tg:
            ticker = tg.create_task(self._tick(generation))
            try:
                report = await workflows.analyze(self.client, upload.data, upload.media_type)
            except workflows.AnalysisFailed as e:
                outcome = (fail, e.message)
            except Exception as e:
                logger.exception("Analysis crashed")
                outcome = (fail, str(e) or "Analysis failed")
            else:
                outcome = (complete, report)
            finally:
                ticker.cancel()

        if not self._current(generation):
            logger.info("Discarding analysis result for a session that was reset")
            return
        transition, arg = outcome
        self.state = transition(self.state, arg)

    async def _tick(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.phase_interval)
            if not self._current(generation) or self.state.stage is not Stage.ANALYZING:
                return
            self.state = advance_phase(self.state)

    async def draft_email(self, include_attention: bool = False, include_missing: bool = False) -> EmailDraft:
        if self.state.stage is not Stage.REPORTED:
            raise InvalidTransition("There is no report to draft an email from")
        if self.email.generating:
            raise InvalidTransition("An email is already being drafted")

        generation = self.state.generation
        self.email = EmailDraft(include_attention, include_missing, generating=True)
        text = ""
        try:
            text = await workflows.draft_email(self.client, self.state.report, include_attention, include_missing)
        finally:
            if self._current(generation):
                self.email = replace(self.email, text=text, generating=False)
        return EmailDraft(include_attention, include_missing, text=text)

    def clear_email(self) -> EmailDraft:
        if not self.email.generating:
            self.email = replace(self.email, text="")
        return self.email

    async def aclose(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        await self.client.aclose()
