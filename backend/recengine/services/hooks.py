"""Before/after interaction callbacks registered by the host application"""

from collections import defaultdict
from typing import Any, Callable, Dict, List

from ..utils.logging import get_logger

logger = get_logger(__name__)

ACTIONS = (
    "like", "unlike",
    "dislike", "undislike",
    "hide", "unhide",
    "bookmark", "unbookmark",
)

HOOK_NAMES = frozenset(
    f"{phase}_{action}" for phase in ("before", "after") for action in ACTIONS
)

Hook = Callable[[str, str, str], Any]


class HookDispatcher:
    """
    Registry of callbacks run around each interaction

    Callbacks receive ``(user_id, category, item_id)``. A ``before_*``
    callback that returns ``False`` vetoes the interaction; any other
    return value lets it proceed. ``after_*`` return values are ignored.
    """

    def __init__(self):
        self._hooks: Dict[str, List[Hook]] = defaultdict(list)

    def register(self, hook_name: str, callback: Hook) -> Hook:
        if hook_name not in HOOK_NAMES:
            raise ValueError(f"Unknown hook: {hook_name}")
        self._hooks[hook_name].append(callback)
        return callback

    def on(self, hook_name: str) -> Callable[[Hook], Hook]:
        """
        Decorator form of :meth:`register`

        Usage:
            @hooks.on("after_like")
            def notify(user_id, category, item_id):
                pass
        """
        def decorator(callback: Hook) -> Hook:
            return self.register(hook_name, callback)

        return decorator

    def before(self, action: str, user_id: str, category: str, item_id: str) -> bool:
        """Run ``before_<action>`` callbacks; False if any of them vetoed"""
        for callback in self._hooks.get(f"before_{action}", []):
            if callback(user_id, category, item_id) is False:
                logger.debug(
                    "Interaction vetoed by hook",
                    action=action,
                    hook=getattr(callback, "__name__", repr(callback)),
                    user_id=user_id,
                    category=category,
                    item_id=item_id,
                )
                return False
        return True

    def after(self, action: str, user_id: str, category: str, item_id: str) -> None:
        for callback in self._hooks.get(f"after_{action}", []):
            callback(user_id, category, item_id)
