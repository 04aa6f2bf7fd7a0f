"""Slice publishers: optimistic working-state updates followed by ordered writes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .errors import SkillGraphError
from .session import SessionManager, SessionState
from .telemetry import slice_write_failed
from .user_record import (
    ChatMessage,
    InterviewQuestion,
    SkillAnalysis,
    SliceName,
    StudyPlanItem,
    TranscriptEntry,
    merge_question_batches,
    prepare_slice,
)

logger = logging.getLogger(__name__)


class SlicePublisher:
    """Base publisher owning one slice of the session's working state.

    ``publish`` mutates the ``SessionContext`` before returning and then
    schedules the store write. Writes from one publisher are chained so they
    complete in the order they were issued. A failed write is reported but
    never reverts the working state.
    """

    slice_name: SliceName

    def __init__(self, session: SessionManager) -> None:
        self._session = session
        self._tail: Optional[asyncio.Task] = None

    def _apply(self, artifact: Any) -> Any:
        raise NotImplementedError

    def _value_for_write(self, value: Any, generation: int) -> Any:
        return value

    def publish(self, artifact: Any) -> Optional[asyncio.Task]:
        value = self._apply(artifact)
        context = self._session.context
        context.touch(self.slice_name)
        if self._session.state is not SessionState.AUTHENTICATED or context.user_id is None:
            logger.debug("Anonymous session; %s kept in working state only", self.slice_name)
            return None
        task = asyncio.create_task(
            self._write(self._tail, context.user_id, context.generation, value),
            name=f"publish-{self.slice_name}",
        )
        self._tail = task
        return task

    async def drain(self) -> None:
        tail = self._tail
        if tail is not None:
            await tail

    async def _write(
        self,
        previous: Optional[asyncio.Task],
        user_id: str,
        generation: int,
        value: Any,
    ) -> bool:
        if previous is not None:
            await previous
        await self._session.wait_hydrated()
        value = self._value_for_write(value, generation)
        try:
            success = await self._session.engine.write_slice(user_id, self.slice_name, value)
        except SkillGraphError as exc:
            logger.warning("Persisting %s for %s failed: %s", self.slice_name, user_id, exc)
            slice_write_failed(self.slice_name, user_id, exc)
            return False
        if generation != self._session.context.generation:
            logger.info("Write of %s for %s completed after the session changed", self.slice_name, user_id)
        elif not success:
            logger.warning("Store rejected %s write for %s", self.slice_name, user_id)
            slice_write_failed(self.slice_name, user_id)
        return bool(success)


class AnalysisPublisher(SlicePublisher):
    """Publishes a fresh skill analysis.

    The working plan was derived from the previous analysis and is cleared;
    its stored copy is left alone until the next plan publish replaces it.
    The question set keeps accumulating across analyses.
    """

    slice_name = "analysis"

    def _apply(self, artifact: Any) -> SkillAnalysis:
        analysis: SkillAnalysis = prepare_slice("analysis", artifact)
        context = self._session.context
        context.analysis = analysis
        context.plan = []
        context.touch("plan")
        return analysis


class PlanPublisher(SlicePublisher):
    slice_name = "plan"

    def _apply(self, artifact: Sequence[Any]) -> List[StudyPlanItem]:
        plan: List[StudyPlanItem] = prepare_slice("plan", artifact)
        self._session.context.plan = list(plan)
        return plan


class InterviewPublisher(SlicePublisher):
    """Merges each new batch into the accumulated question set and writes the result.

    The write carries the working set as it stands when the write runs, so
    questions hydrated after the publish are persisted too.
    """

    slice_name = "questions"

    def _apply(self, artifact: Sequence[Any]) -> List[InterviewQuestion]:
        batch: List[InterviewQuestion] = prepare_slice("questions", artifact)
        merged = merge_question_batches(batch, self._session.context.questions)
        self._session.context.questions = merged
        return merged

    def _value_for_write(self, value: List[InterviewQuestion], generation: int) -> List[InterviewQuestion]:
        context = self._session.context
        if generation != context.generation:
            return value
        return list(context.questions)


class ChatPublisher(SlicePublisher):
    slice_name = "transcript"

    def _apply(self, artifact: Any) -> ChatMessage:
        message: ChatMessage = prepare_slice("transcript", artifact)
        # The serving store stamps its own timestamp on append.
        self._session.context.transcript.append(TranscriptEntry(role=message.role, text=message.text))
        return message


class Publishers:
    """The four slice publishers bound to one session."""

    def __init__(self, session: SessionManager) -> None:
        self.analysis = AnalysisPublisher(session)
        self.plan = PlanPublisher(session)
        self.interview = InterviewPublisher(session)
        self.chat = ChatPublisher(session)

    def all(self) -> List[SlicePublisher]:
        return [self.analysis, self.plan, self.interview, self.chat]

    async def drain(self) -> None:
        await asyncio.gather(*(publisher.drain() for publisher in self.all()))


__all__ = [
    "AnalysisPublisher",
    "ChatPublisher",
    "InterviewPublisher",
    "PlanPublisher",
    "Publishers",
    "SlicePublisher",
]
