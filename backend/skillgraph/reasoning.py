"""OpenAI-backed reasoning collaborator that produces the derived artifacts."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from .artifacts import parse_interview_questions, parse_skill_analysis, parse_study_plan
from .config import Settings, get_settings
from .user_record import ChatMessage, InterviewQuestion, SkillAnalysis, StudyPlanItem

logger = logging.getLogger(__name__)

MAX_PROFILE_CHARS = 20000

ANALYSIS_INSTRUCTIONS = (
    "You profile candidates. Extract normalized skills from the text, predict the most suitable job role, "
    "and split the skills into those matching the role, those missing for it, and those irrelevant to it. "
    "Respond with a JSON object with keys detectedSkills, predictedRole, matchPercentage (0-100), "
    "matchingSkills, missingSkills, irrelevantSkills."
)

PLAN_INSTRUCTIONS = (
    "You design personalized study plans. For each missing skill include an estimated learning time, a "
    "difficulty (Beginner, Intermediate or Advanced), a short description and two high-quality learning "
    "resources. Respond with a JSON object {\"items\": [{skill, estimatedTime, difficulty, description, "
    "resources: [{title, url}]}]}."
)

INTERVIEW_INSTRUCTIONS = (
    "Act as a senior hiring manager. Produce a diverse batch of 15 interview questions: Technical (5), "
    "HR (3), Aptitude (2), Coding (3) and System Design (2), each with a comprehensive answer and a "
    "professional tip. Respond with a JSON object {\"items\": [{id, category, question, answer, tips}]}."
)

ASSISTANT_INSTRUCTIONS = (
    "You are the SkillGraph career assistant. You help users with career advice, study strategies and "
    "resume optimization based on their current skills and predicted roles. Keep answers concise and helpful."
)


class ReasoningClient:
    """Thin wrapper around the OpenAI chat completions API.

    Structured calls request JSON output and always return a usable artifact;
    malformed responses degrade to empty defaults in ``skillgraph.artifacts``.
    Transport and authentication errors from the SDK propagate.
    """

    def __init__(
        self,
        *,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self._model = model or settings.reasoning_model

    async def _complete(self, instructions: str, prompt: str, *, structured: bool) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if structured else {}
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
            **kwargs,
        )
        content = response.choices[0].message.content if response.choices else None
        return content or ""

    async def analyze_skills(self, profile_text: str) -> SkillAnalysis:
        prompt = f"Analyze the following skills or resume text:\n{profile_text[:MAX_PROFILE_CHARS]}"
        raw = await self._complete(ANALYSIS_INSTRUCTIONS, prompt, structured=True)
        return parse_skill_analysis(raw)

    async def generate_study_plan(self, missing_skills: Sequence[str], role: str) -> List[StudyPlanItem]:
        prompt = f"Missing skills: [{', '.join(missing_skills)}]\nTarget role: {role}"
        raw = await self._complete(PLAN_INSTRUCTIONS, prompt, structured=True)
        return parse_study_plan(raw)

    async def generate_interview_questions(self, role: str, skills: Sequence[str]) -> List[InterviewQuestion]:
        prompt = f"Role: {role}\nSkills: [{', '.join(skills)}]"
        raw = await self._complete(INTERVIEW_INSTRUCTIONS, prompt, structured=True)
        questions = parse_interview_questions(raw)
        logger.info("Generated %d interview questions for %s", len(questions), role)
        return questions

    async def reply(self, history: Sequence[ChatMessage], message: str) -> str:
        messages = [{"role": "system", "content": ASSISTANT_INSTRUCTIONS}]
        for entry in history:
            messages.append({"role": "assistant" if entry.role == "model" else "user", "content": entry.text})
        messages.append({"role": "user", "content": message})
        response = await self._client.chat.completions.create(model=self._model, messages=messages)
        content = response.choices[0].message.content if response.choices else None
        return content or ""


__all__ = ["ReasoningClient"]
