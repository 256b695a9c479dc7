"""Prefixed identifiers for plans, suites, test cases, runs and results."""

import uuid

PLAN = "plan_"
SUITE = "suite_"
TEST_CASE = "tc_"
RUN = "run_"
RUN_TEST = "rt_"
ISSUE = "gh_"


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID such as ``run_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
