"""Task endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.auth.policy import scope_filter
from crmdash.db.deps import DealsRepoDep, TasksRepoDep, TeamRepoDep
from crmdash.rest.guards import changes, found, load_deal, require_member_of, require_mutate, require_view
from crmdash.rest.schemas import TaskCreate, TaskOut, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(
    principal: PrincipalDep,
    repo: TasksRepoDep,
    status: str | None = None,
    assigned_to: int | None = None,
    deal_id: int | None = None,
) -> dict:
    rows = await repo.list(scope_filter(principal), status=status, assigned_to=assigned_to, deal_id=deal_id)
    return {"tasks": [TaskOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=TaskOut)
async def create_task(
    body: TaskCreate,
    principal: PrincipalDep,
    repo: TasksRepoDep,
    deals: DealsRepoDep,
    team: TeamRepoDep,
) -> TaskOut:
    _, tenant = await load_deal(deals, body.deal_id, principal, mutate=True)
    await require_member_of(team, body.assigned_to, tenant)
    task = await repo.create(**body.model_dump())
    return TaskOut.model_validate(task)


@router.get("/{task_id}")
async def get_task(task_id: int, principal: PrincipalDep, repo: TasksRepoDep) -> dict:
    task, tenant = found(await repo.get_with_tenant(task_id), "Task")
    require_view(principal, tenant, "task")
    return {"task": TaskOut.model_validate(task)}


@router.put("/{task_id}")
async def update_task(
    task_id: int, body: TaskUpdate, principal: PrincipalDep, repo: TasksRepoDep, team: TeamRepoDep
) -> dict:
    task, tenant = found(await repo.get_with_tenant(task_id), "Task")
    require_mutate(principal, tenant, "task")
    data = changes(body, "title", "status")
    if "assigned_to" in data:
        await require_member_of(team, data["assigned_to"], tenant)
    task = await repo.update(task, **data)
    return {"task": TaskOut.model_validate(task)}


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: int, principal: PrincipalDep, repo: TasksRepoDep) -> Response:
    task, tenant = found(await repo.get_with_tenant(task_id), "Task")
    require_mutate(principal, tenant, "task")
    await repo.delete(task)
    return Response(status_code=204)
