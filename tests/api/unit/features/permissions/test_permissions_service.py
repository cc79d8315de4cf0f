from __future__ import annotations

import pytest
import pytest_asyncio

from rolesync_api.features.permissions import AccessReason, PermissionsService
from rolesync_db.engine import session_scope
from tests.utils import seed_role, seed_user, seed_workspace

GROUP_ID = 4242


@pytest_asyncio.fixture()
async def seeded(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        owner = await seed_role(session, GROUP_ID, "Admin", is_owner_role=True)
        staff = await seed_role(session, GROUP_ID, "Staff", permissions=["view_staff_config"])
        await seed_user(session, 1, role_ids=[owner.id])
        await seed_user(session, 2, role_ids=[staff.id])
        await seed_user(session, 3)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("userid", "permission", "allowed", "reason"),
    [
        (99, None, False, AccessReason.UNKNOWN_USER),
        (3, None, False, AccessReason.NO_ROLE),
        (1, "manage_everything", True, AccessReason.OWNER_ROLE),
        (2, None, True, AccessReason.NO_PERMISSION_REQUIRED),
        (2, "view_staff_config", True, AccessReason.GRANTED),
        (2, "admin", False, AccessReason.MISSING_PERMISSION),
    ],
)
async def test_check_decisions(
    seeded,
    session_factory,
    userid: int,
    permission: str | None,
    allowed: bool,
    reason: AccessReason,
) -> None:
    async with session_factory() as session:
        decision = await PermissionsService(session).check(userid, GROUP_ID, permission)

    assert decision.allowed is allowed
    assert decision.reason is reason
    assert bool(decision) is allowed


@pytest.mark.asyncio
async def test_roles_in_other_workspaces_do_not_count(seeded, session_factory) -> None:
    async with session_factory() as session:
        decision = await PermissionsService(session).check(1, 5151)

    assert decision.reason is AccessReason.NO_ROLE
