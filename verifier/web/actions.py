from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

ACTION_ATTR = "__verifier_action__"


@dataclass(frozen=True)
class Action:
    """
    A named request-handling entry point on a controller. Actions without a
    path are private: they can only be reached by detaching to them.
    """
    name: str
    handler: Callable[..., Any]
    path: Optional[str] = None
    methods: Tuple[str, ...] = ("GET",)

    @property
    def public(self) -> bool:
        return self.path is not None


def action(
    path: Optional[str] = None,
    methods: Sequence[str] = ("GET",),
    name: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        setattr(
            fn,
            ACTION_ATTR,
            {"name": name or fn.__name__, "path": path, "methods": tuple(m.upper() for m in methods)},
        )
        return fn

    return deco


class Detach(Exception):
    """
    Raised to stop the current action and hand control to ``action``
    with ``args``. Caught by the controller's dispatch.
    """

    def __init__(self, action: Any, args: Sequence[Any] = ()) -> None:
        self.action = action
        self.args_for_action = tuple(args)
        name = action.name if isinstance(action, Action) else str(action)
        super().__init__(f"detach to '{name}'")
