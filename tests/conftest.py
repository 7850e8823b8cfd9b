from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from verifier.web.context import RequestContext
from verifier.web.controller import Controller


@pytest.fixture
def make_context():
    """
    Build a RequestContext for ``controller.action_name`` without going
    through HTTP. Pass the same ``stash`` to simulate one request.
    """

    def _make(
        controller: Controller,
        action_name: str,
        params: Optional[Dict[str, Any]] = None,
        stash: Optional[Dict[str, Any]] = None,
    ) -> RequestContext:
        act = controller.action_for(action_name)
        assert act is not None, f"{controller} has no action {action_name}"
        return RequestContext(controller, act, params=params or {}, stash=stash if stash is not None else {})

    return _make
