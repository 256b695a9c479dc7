"""Worker for test planning jobs."""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.plan import PlanRow
from qaai.errors.exceptions import CollaboratorError, PayloadError
from qaai.models.enums import JobKind, PlanStatus
from qaai.models.job import JobModel
from qaai.repositories.project_repo import ProjectRepository
from qaai.services.id_generator import PLAN, generate_id
from qaai.workers.base import BaseWorker

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 60_000

PLANNER_SYSTEM_PROMPT = """You are an expert QA engineer specializing in E2E testing with Playwright.

Your task is to analyze code changes or specifications and create a comprehensive test plan.

For each test scenario, provide:
1. A clear, descriptive name
2. The user flow or feature being tested
3. Specific test steps
4. Expected outcomes
5. Priority (high, medium, low)
6. Estimated complexity (simple, moderate, complex)

Focus on critical user paths, edge cases and error handling, integration
points, UI interactions, data validation and security considerations.

Return your response as a JSON object with this structure:
{
  "summary": "Brief overview of what's being tested",
  "scenarios": [
    {
      "name": "Test scenario name",
      "description": "What this test validates",
      "priority": "high|medium|low",
      "complexity": "simple|moderate|complex",
      "steps": ["Step 1: Action to take", "Step 2: Next action", "Step 3: Verification"],
      "expectedOutcome": "What should happen when test passes"
    }
  ],
  "coverage": {
    "routes": ["List of routes/pages covered"],
    "features": ["List of features tested"],
    "riskAreas": ["Areas that need extra attention"]
  }
}"""


def pr_prompt(title: str, body: str | None, diff: str) -> str:
    if len(diff) > MAX_DIFF_CHARS:
        diff = diff[:MAX_DIFF_CHARS] + "\n... (diff truncated)"
    return f"""Analyze this Pull Request and create a test plan.

PR Title: {title}
PR Description:
{body or 'No description provided'}

Code Changes (unified diff):
```diff
{diff}
```

Create a comprehensive test plan that covers:
1. New features or changes introduced
2. Potential regression areas
3. Edge cases based on the code changes
4. Integration points affected

Focus on E2E testing scenarios that can be automated with Playwright."""


def spec_prompt(spec_md: str) -> str:
    return f"""Analyze this specification and create a test plan.

Specification:
{spec_md}

Create a comprehensive test plan that covers:
1. All features described in the spec
2. User workflows and interactions
3. Edge cases and error scenarios
4. Data validation requirements
5. Integration points

Focus on E2E testing scenarios that can be automated with Playwright."""


class PlanWorker(BaseWorker):
    """Turn a pull request or a markdown spec into a stored test plan."""

    async def process(self, job: JobModel, session: AsyncSession) -> dict:
        payload = job.payload
        project_id = self.require(payload, "project_id")
        pr_url = payload.get("pr_url")
        spec_md = payload.get("spec_md")
        if not pr_url and not spec_md:
            raise PayloadError("Either pr_url or spec_md must be provided")

        project = await ProjectRepository(session).get(project_id)
        if project is None:
            raise PayloadError(f"Unknown project {project_id}")

        if pr_url:
            github = self.deps.github(project.github_token)
            metadata, diff = await asyncio.gather(
                github.fetch_pr_metadata(pr_url),
                github.fetch_pr_diff(pr_url),
            )
            logger.info(
                "Planning PR %r by %s: +%d -%d across %d files",
                metadata.title,
                metadata.author,
                metadata.additions,
                metadata.deletions,
                metadata.changed_files,
            )
            plan = await self.deps.llm.generate_json(
                PLANNER_SYSTEM_PROMPT, pr_prompt(metadata.title, metadata.body, diff)
            )
            extra = {
                "source": "pr",
                "pr_url": pr_url,
                "pr_title": metadata.title,
                "pr_author": metadata.author,
                "head_sha": metadata.head_sha,
                "pr_changes": {
                    "files": metadata.changed_files,
                    "additions": metadata.additions,
                    "deletions": metadata.deletions,
                },
            }
        else:
            logger.info("Planning from specification (%d chars)", len(spec_md))
            plan = await self.deps.llm.generate_json(PLANNER_SYSTEM_PROMPT, spec_prompt(spec_md))
            extra = {"source": "spec"}

        if not isinstance(plan, dict) or not isinstance(plan.get("scenarios"), list):
            raise CollaboratorError("llm", "test plan response has no scenarios list")

        row = PlanRow(
            plan_id=generate_id(PLAN),
            project_id=project_id,
            suite_id=payload.get("suite_id"),
            pr_url=pr_url,
            spec_md=spec_md,
            plan_json={
                "summary": plan.get("summary", ""),
                "scenarios": plan["scenarios"],
                "coverage": plan.get("coverage") or {},
                **extra,
            },
            status=PlanStatus.COMPLETED,
        )
        session.add(row)
        await session.flush()
        logger.info("Plan %s saved with %d scenarios", row.plan_id, len(plan["scenarios"]))

        result = {"plan_id": row.plan_id, "scenarios": len(plan["scenarios"])}
        if payload.get("auto_generate", True):
            result["generate_job_id"] = await self.deps.store.enqueue(
                JobKind.GENERATE,
                {"plan_id": row.plan_id, "project_id": project_id, "auto_run": True},
                session=session,
            )
        return result
