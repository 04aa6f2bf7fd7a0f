"""Client-side wiring of stores, sync engine, session, and publishers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import Settings, get_settings
from .errors import SessionError
from .publishers import Publishers
from .reasoning import ReasoningClient
from .session import IdentitySlot, SessionManager
from .stores import LocalRecordStore, RemoteRecordStore
from .sync_engine import SyncEngine
from .user_record import ChatMessage, InterviewQuestion, SkillAnalysis, StudyPlanItem

logger = logging.getLogger(__name__)


@dataclass
class SkillGraphRuntime:
    """High level runtime for a single client profile session.

    Builds the record stores for the configured persistence mode and exposes
    the artifact workflows: analyze, plan, interview preparation and chat.
    """

    settings: Settings = field(default_factory=get_settings)
    remote: Optional[RemoteRecordStore] = None
    reasoning: Optional[ReasoningClient] = None

    def __post_init__(self) -> None:
        mode = self.settings.persistence_mode
        self.local = LocalRecordStore(self.settings.local_store_path)
        if self.remote is None and mode != "local":
            self.remote = RemoteRecordStore(
                self.settings.remote_url,
                timeout_seconds=self.settings.remote_timeout,
            )
        self.engine = SyncEngine(self.remote, self.local, mode=mode)
        self.session = SessionManager(self.engine, IdentitySlot(self.settings.identity_slot_path))
        self.publishers = Publishers(self.session)
        logger.info("SkillGraph runtime ready (mode=%s, data_dir=%s)", mode, self.settings.data_dir)

    def _reasoning(self) -> ReasoningClient:
        if self.reasoning is None:
            self.reasoning = ReasoningClient(settings=self.settings)
        return self.reasoning

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------
    async def analyze(self, profile_text: str) -> SkillAnalysis:
        analysis = await self._reasoning().analyze_skills(profile_text)
        self.publishers.analysis.publish(analysis)
        return analysis

    async def build_study_plan(self) -> List[StudyPlanItem]:
        analysis = self._require_analysis()
        plan = await self._reasoning().generate_study_plan(analysis.missing_skills, analysis.predicted_role)
        self.publishers.plan.publish(plan)
        return list(self.session.context.plan)

    async def prepare_interview(self) -> List[InterviewQuestion]:
        analysis = self._require_analysis()
        batch = await self._reasoning().generate_interview_questions(
            analysis.predicted_role, analysis.detected_skills
        )
        self.publishers.interview.publish(batch)
        return list(self.session.context.questions)

    async def chat(self, text: str) -> str:
        history = [ChatMessage(role=entry.role, text=entry.text) for entry in self.session.context.transcript]
        self.publishers.chat.publish(ChatMessage(role="user", text=text))
        reply = await self._reasoning().reply(history, text)
        self.publishers.chat.publish(ChatMessage(role="model", text=reply))
        return reply

    def _require_analysis(self) -> SkillAnalysis:
        analysis = self.session.context.analysis
        if analysis is None:
            raise SessionError("Run a skill analysis first.")
        return analysis

    async def aclose(self) -> None:
        await self.publishers.drain()
        if self.remote is not None:
            await self.remote.aclose()


__all__ = ["SkillGraphRuntime"]
