"""Admin API endpoints: users, skill registry, skill runtime, schedules."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from flowbot.agent.runner import ChatRunner
from flowbot.agent.skills.registry import SkillRegistry
from flowbot.api.deps import get_cancel_token, get_runner, get_schedules, get_skills
from flowbot.core.cancel import CancelToken
from flowbot.core.cron.registry import ScheduleRegistry
from flowbot.core.errors import SkillRuntimeError
from flowbot.memory.models import (
    CreateScheduleRequest,
    CreateSkillRequest,
    CreateUserRequest,
    ScheduleDTO,
    ScheduleListResponse,
    ScheduleResponse,
    SkillDTO,
    SkillExecutionResponse,
    SkillListResponse,
    SkillResponse,
    SkillRunRequest,
    UpdateScheduleRequest,
    UpdateSkillRequest,
    UserDTO,
    UserListResponse,
    UserResponse,
)

router = APIRouter(tags=["admin"])


# ════════════════════════════════════════════════════════════
# USERS
# ════════════════════════════════════════════════════════════


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(body: CreateUserRequest, runner: ChatRunner = Depends(get_runner)):
    user = runner.users.create_user(body.channel, body.channel_id)
    return UserResponse(user=UserDTO.from_entity(user))


@router.get("/users", response_model=UserListResponse)
async def list_users(runner: ChatRunner = Depends(get_runner)):
    return UserListResponse(users=[UserDTO.from_entity(u) for u in runner.users.list_users()])


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, runner: ChatRunner = Depends(get_runner)):
    return UserResponse(user=UserDTO.from_entity(runner.users.get_user(user_id)))


@router.delete("/users/{user_id}", response_model=UserResponse)
async def delete_user(user_id: str, runner: ChatRunner = Depends(get_runner)):
    user = runner.users.get_user(user_id)
    runner.users.delete_user(user.id)
    return UserResponse(user=UserDTO.from_entity(user))


# ════════════════════════════════════════════════════════════
# SKILLS: runtime (declared before /skills/{name})
# ════════════════════════════════════════════════════════════


@router.get("/skills/runtime")
async def runtime_skills(skills: SkillRegistry = Depends(get_skills)):
    """Executables the runtime can see, registered or not."""
    return {"success": True, "skills": skills.list_available()}


@router.get("/skills/runtime/{name}")
async def runtime_skill(name: str, skills: SkillRegistry = Depends(get_skills)):
    return {"success": True, "skill": skills.describe(name)}


@router.post("/skills/{name}/run", response_model=SkillExecutionResponse, response_model_exclude_none=True)
async def run_skill(
    name: str,
    body: SkillRunRequest,
    skills: SkillRegistry = Depends(get_skills),
    token: CancelToken = Depends(get_cancel_token),
):
    """Run a registered skill directly, outside any session."""
    try:
        result = await skills.execute(name, body.input, token=token)
    except SkillRuntimeError as e:
        return SkillExecutionResponse(success=False, error=str(e))
    return SkillExecutionResponse(
        success=result.success,
        output=result.output,
        error=result.error or None,
    )


# ════════════════════════════════════════════════════════════
# SKILLS: registry
# ════════════════════════════════════════════════════════════


@router.post("/skills", response_model=SkillResponse, status_code=201)
async def register_skill(body: CreateSkillRequest, skills: SkillRegistry = Depends(get_skills)):
    skill = skills.register(body.name, body.version, body.location, body.permissions, body.metadata)
    return SkillResponse(skill=SkillDTO.from_entity(skill))


@router.get("/skills", response_model=SkillListResponse)
async def list_skills(skills: SkillRegistry = Depends(get_skills)):
    return SkillListResponse(skills=[SkillDTO.from_entity(s) for s in skills.list()])


@router.get("/skills/{name}", response_model=SkillResponse)
async def get_skill(name: str, skills: SkillRegistry = Depends(get_skills)):
    return SkillResponse(skill=SkillDTO.from_entity(skills.get_by_name(name)))


@router.put("/skills/{skill_id}", response_model=SkillResponse)
async def update_skill(
    skill_id: str, body: UpdateSkillRequest, skills: SkillRegistry = Depends(get_skills)
):
    skill = skills.update(
        skill_id,
        version=body.version,
        location=body.location,
        permissions=body.permissions,
        metadata=body.metadata,
    )
    return SkillResponse(skill=SkillDTO.from_entity(skill))


@router.delete("/skills/{skill_id}", response_model=SkillResponse)
async def delete_skill(skill_id: str, skills: SkillRegistry = Depends(get_skills)):
    skill = skills.get(skill_id)
    skills.delete(skill.id)
    return SkillResponse(skill=SkillDTO.from_entity(skill))


# ════════════════════════════════════════════════════════════
# SCHEDULES
# ════════════════════════════════════════════════════════════


@router.post("/schedules", response_model=ScheduleResponse, status_code=201)
async def create_schedule(
    body: CreateScheduleRequest, schedules: ScheduleRegistry = Depends(get_schedules)
):
    schedule = schedules.create(body.skill, body.cron_expression, body.input, body.enabled)
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedule))


@router.get("/schedules", response_model=ScheduleListResponse)
async def list_schedules(
    skill: str | None = Query(default=None),
    enabled: bool | None = Query(default=None),
    schedules: ScheduleRegistry = Depends(get_schedules),
):
    if skill:
        items = schedules.list_by_skill(skill)
    elif enabled:
        items = schedules.list_enabled()
    else:
        items = schedules.list()
    if enabled is not None:
        items = [s for s in items if s.enabled == enabled]
    return ScheduleListResponse(schedules=[ScheduleDTO.from_entity(s) for s in items])


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: str, schedules: ScheduleRegistry = Depends(get_schedules)):
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedules.get(schedule_id)))


@router.put("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    body: UpdateScheduleRequest,
    schedules: ScheduleRegistry = Depends(get_schedules),
):
    schedule = schedules.update(
        schedule_id,
        cron_expression=body.cron_expression,
        input=body.input,
        enabled=body.enabled,
    )
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedule))


@router.post("/schedules/{schedule_id}/enable", response_model=ScheduleResponse)
async def enable_schedule(schedule_id: str, schedules: ScheduleRegistry = Depends(get_schedules)):
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedules.enable(schedule_id)))


@router.post("/schedules/{schedule_id}/disable", response_model=ScheduleResponse)
async def disable_schedule(schedule_id: str, schedules: ScheduleRegistry = Depends(get_schedules)):
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedules.disable(schedule_id)))


@router.delete("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def delete_schedule(schedule_id: str, schedules: ScheduleRegistry = Depends(get_schedules)):
    schedule = schedules.get(schedule_id)
    schedules.delete(schedule.id)
    return ScheduleResponse(schedule=ScheduleDTO.from_entity(schedule))
