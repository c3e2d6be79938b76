from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from docchat.processing.registry import ProcessingRegistry

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _stamp(obj: Any) -> None:
    """Stand-in for session.refresh(): fill server-side defaults."""
    for attr in ("created_at", "updated_at"):
        if getattr(obj, attr, None) is None:
            setattr(obj, attr, NOW)


def build_session(objects: dict[tuple[type, Any], Any] | None = None) -> AsyncMock:
    """AsyncSession mock whose get() answers from an in-memory identity map."""
    objects = dict(objects or {})
    session = AsyncMock()
    session.objects = objects
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock(side_effect=_stamp)
    session.get = AsyncMock(side_effect=lambda model, key: objects.get((model, key)))
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


@pytest.fixture
def make_session():
    return build_session


@pytest.fixture
def mock_registry() -> MagicMock:
    registry = MagicMock(spec=ProcessingRegistry)
    registry.cancel.return_value = False
    return registry
