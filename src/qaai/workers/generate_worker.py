"""Worker that turns plan scenarios into stored test cases."""

import json
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.run import RunRow
from qaai.db.models.suite import SuiteRow
from qaai.db.models.test_case import TestCaseRow
from qaai.errors.exceptions import PayloadError
from qaai.models.enums import JobKind, PlanStatus, RunStatus, RunTrigger, TestSource
from qaai.models.job import JobModel
from qaai.repositories.plan_repo import PlanRepository, SuiteRepository
from qaai.services.id_generator import RUN, SUITE, TEST_CASE, generate_id
from qaai.workers.base import BaseWorker

logger = logging.getLogger(__name__)

PRIORITIES = {"high": 1, "medium": 2, "low": 3}

GENERATOR_SYSTEM_PROMPT = """You are an expert QA automation engineer writing Playwright E2E tests.

Turn the test scenario you are given into a structured, executable test
definition. Each step is one concrete browser or API action, or one
assertion.

Return your response as a JSON object with this structure:
{
  "title": "Short test title",
  "steps": [
    {"action": "goto|click|fill|expect|request", "target": "selector, URL or route", "value": "optional input or expected value"}
  ]
}"""


def scenario_prompt(scenario: dict, summary: str) -> str:
    return f"""Test plan summary: {summary or 'N/A'}

Scenario:
{json.dumps(scenario, indent=2)}

Write the structured test definition for this scenario."""


class GenerateWorker(BaseWorker):
    """Write one test case per plan scenario and optionally queue a run."""

    async def process(self, job: JobModel, session: AsyncSession) -> dict:
        payload = job.payload
        plan_id = self.require(payload, "plan_id")

        plan = await PlanRepository(session).get(plan_id)
        if plan is None:
            raise PayloadError(f"Unknown plan {plan_id}")
        project_id = payload.get("project_id") or plan.project_id

        summary = plan.plan_json.get("summary", "")
        suite = await self._resolve_suite(session, plan, project_id, summary)

        scenarios = plan.plan_json.get("scenarios") or []
        created = 0
        for idx, scenario in enumerate(scenarios, 1):
            if not isinstance(scenario, dict):
                logger.warning("Skipping malformed scenario %d of plan %s", idx, plan_id)
                continue

            definition = await self.deps.llm.generate_json(
                GENERATOR_SYSTEM_PROMPT, scenario_prompt(scenario, summary)
            )
            if not isinstance(definition, dict):
                definition = {}
            steps = definition.get("steps") or scenario.get("steps") or []
            title = definition.get("title") or scenario.get("name") or f"Scenario {idx}"

            session.add(
                TestCaseRow(
                    test_case_id=generate_id(TEST_CASE),
                    suite_id=suite.suite_id,
                    title=str(title)[:500],
                    priority=PRIORITIES.get(str(scenario.get("priority", "")).lower(), 2),
                    steps=steps,
                    source=TestSource.AI,
                )
            )
            created += 1

        plan.status = PlanStatus.GENERATED
        await session.flush()
        logger.info("Generated %d test cases for plan %s into suite %s", created, plan_id, suite.suite_id)

        result = {"plan_id": plan_id, "suite_id": suite.suite_id, "test_cases": created}
        if payload.get("auto_run", True):
            run = RunRow(
                run_id=generate_id(RUN),
                project_id=project_id,
                plan_id=plan_id,
                suite_ids=[suite.suite_id],
                trigger=RunTrigger.API,
                status=RunStatus.QUEUED,
                meta={
                    key: plan.plan_json[key]
                    for key in ("pr_url", "head_sha")
                    if plan.plan_json.get(key)
                },
            )
            session.add(run)
            await session.flush()
            result["run_id"] = run.run_id
            result["run_job_id"] = await self.deps.store.enqueue(
                JobKind.RUN, {"run_id": run.run_id, "project_id": project_id}, session=session
            )
        return result

    async def _resolve_suite(self, session: AsyncSession, plan, project_id: str, summary: str) -> SuiteRow:
        repo = SuiteRepository(session)
        if plan.suite_id:
            suite = await repo.get(plan.suite_id)
            if suite is not None:
                return suite
            logger.warning("Plan %s references missing suite %s; creating one", plan.plan_id, plan.suite_id)

        suite = await repo.create(
            suite_id=generate_id(SUITE),
            project_id=project_id,
            name=f"AI: {summary[:80]}" if summary else f"AI plan {plan.plan_id}",
            tags=["ai-generated"],
        )
        plan.suite_id = suite.suite_id
        return suite
