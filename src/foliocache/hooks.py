"""CMS write-path hooks.

Factories for ``after_change`` / ``after_delete`` callbacks that a CMS
calls after a collection record or a global changes. Each callback turns
the change into an ``InvalidationEvent`` and hands it to the dispatcher
without waiting, so a slow or failing invalidation never holds up the
write.

Usage:
    dispatcher = InvalidationDispatcher(store)
    gallery_hooks = collection_hooks(dispatcher, "galleries")

    # in the CMS write path
    for hook in gallery_hooks["after_change"]:
        await hook(doc=saved_doc, req=request)
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from foliocache.core.entities.invalidation_event import (
    InvalidationEvent,
    MutationOperation,
)
from foliocache.core.services.invalidation import InvalidationDispatcher

logger = logging.getLogger(__name__)

Hook = Callable[..., Awaitable[Any]]


def should_skip(req: Any) -> bool:
    """Seeds and migrations mark their user to bypass revalidation."""
    user = req.get("user") if isinstance(req, Mapping) else getattr(req, "user", None)
    if user is None:
        return False
    if isinstance(user, Mapping):
        return bool(user.get("bypass_revalidation"))
    return bool(getattr(user, "bypass_revalidation", False))


def _as_doc(doc: Any) -> Mapping[str, Any] | None:
    return doc if isinstance(doc, Mapping) else None


def _as_operation(operation: Any, default: MutationOperation) -> MutationOperation:
    """Read the CMS-supplied ``operation`` ('create' or 'update')."""
    try:
        return MutationOperation(operation)
    except ValueError:
        return default


EventBuilder = Callable[[Mapping[str, Any] | None, MutationOperation], InvalidationEvent]


def _make_hook(
    dispatcher: InvalidationDispatcher,
    build_event: EventBuilder,
    default_operation: MutationOperation,
) -> Hook:
    async def hook(
        doc: Any = None, req: Any = None, operation: Any = None, **_: Any
    ) -> Any:
        if should_skip(req):
            logger.debug("Skipping revalidation for bypassing user")
            return doc
        event = build_event(_as_doc(doc), _as_operation(operation, default_operation))
        dispatcher.dispatch_nowait(event)
        return doc

    return hook


def collection_hooks(
    dispatcher: InvalidationDispatcher,
    collection: str,
) -> dict[str, list[Hook]]:
    """Hooks for a collection: revalidate after change and after delete.

    ``after_change`` records the CMS-supplied ``operation`` kwarg on the
    event, defaulting to an update when it is missing or unrecognised.
    """
    return {
        "after_change": [
            _make_hook(
                dispatcher,
                lambda doc, operation: InvalidationEvent.for_collection(
                    collection, doc, operation
                ),
                MutationOperation.UPDATE,
            )
        ],
        "after_delete": [
            _make_hook(
                dispatcher,
                lambda doc, _: InvalidationEvent.for_collection(
                    collection, doc, MutationOperation.DELETE
                ),
                MutationOperation.DELETE,
            )
        ],
    }


def global_hooks(
    dispatcher: InvalidationDispatcher,
    global_name: str,
) -> dict[str, list[Hook]]:
    """Hooks for a global: revalidate after change."""
    return {
        "after_change": [
            _make_hook(
                dispatcher,
                lambda doc, _: InvalidationEvent.for_global(global_name, doc),
                MutationOperation.UPDATE,
            )
        ],
    }
