"""Mapper configuration checks."""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.orm import configure_mappers

from rolesync_db.base import Base
from rolesync_db.models import Config, Role, User, Workspace


def test_relationships_avoid_noload() -> None:
    configure_mappers()

    offenders = [
        f"{mapper.class_.__name__}.{rel.key}"
        for mapper in Base.registry.mappers
        for rel in mapper.relationships
        if rel.lazy == "noload"
    ]

    assert offenders == []


def test_role_holders_and_configs_are_queried_directly() -> None:
    """Holders are read through ``user_roles`` and configs by workspace key."""

    assert "users" not in inspect(Role).relationships
    assert "configs" not in inspect(Workspace).relationships
    assert "workspace" not in inspect(Config).relationships
    assert "roles" in inspect(User).relationships
