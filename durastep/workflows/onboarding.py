"""Employee onboarding: a four step workflow with a parallel fan-out."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel

from ..context import ExecutionContext

logger = logging.getLogger(__name__)


class OnboardingResult(BaseModel):
    employee_id: str
    it_status: str
    access_status: str
    orientation_status: str


def create_employee() -> str:
    logger.info("Creating employee record...")
    return "EMP-001"


def assign_laptop(employee_id: str) -> str:
    logger.info(f"Assigning laptop & email for {employee_id}")
    return "IT-ASSIGNED"


def provision_access(employee_id: str) -> str:
    logger.info(f"Provisioning system access for {employee_id}")
    return "ACCESS-PROVISIONED"


def schedule_orientation() -> str:
    logger.info("Scheduling orientation session...")
    return "ORIENTATION-SCHEDULED"


def run_onboarding(ctx: ExecutionContext) -> OnboardingResult:
    """Run the onboarding workflow, resuming from any completed steps."""

    employee_id = ctx.step(create_employee, result_type=str)

    # ids are reserved here so replay does not depend on thread scheduling
    it_step, access_step = ctx.next_step_id(), ctx.next_step_id()
    with ThreadPoolExecutor(max_workers=2) as pool:
        it_future = pool.submit(
            ctx.step, it_step, lambda: assign_laptop(employee_id), result_type=str
        )
        access_future = pool.submit(
            ctx.step, access_step, lambda: provision_access(employee_id), result_type=str
        )
        it_status = it_future.result()
        access_status = access_future.result()

    orientation_status = ctx.step(schedule_orientation, result_type=str)

    logger.info("Workflow completed successfully.")
    return OnboardingResult(
        employee_id=employee_id,
        it_status=it_status,
        access_status=access_status,
        orientation_status=orientation_status,
    )
