"""
Parameter scoping and merge rules for context inheritance.

Every slot in the ParameterBag belongs to an entity scope. When a
message names a different order (or product) than the one carried over
from history, every inherited slot of that scope is dropped together
before merging, so details of the old entity never leak into the new
one.

Usage:
    merged = merge_parameters(previous=inherited, fresh=classified.parameters)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from support_bot.schemas.classification_schema import ParameterBag
from support_bot.utils import normalize_order_number

logger = logging.getLogger(__name__)


class EntityScope(str, Enum):
    """Entity a parameter describes."""
    ORDER = "order"
    PRODUCT = "product"
    CONVERSATION = "conversation"


@dataclass(frozen=True)
class ParameterDefinition:
    """Schema entry for one ParameterBag slot."""
    name: str
    scope: EntityScope
    anchor: bool = False
    normalizer: Optional[Callable[[str], str]] = None


def _casefold(value: str) -> str:
    return value.strip().casefold()


PARAMETER_DEFINITIONS: list[ParameterDefinition] = [
    ParameterDefinition("order_number", EntityScope.ORDER, anchor=True, normalizer=normalize_order_number),
    ParameterDefinition("email", EntityScope.ORDER),
    ParameterDefinition("new_delivery_info", EntityScope.ORDER),
    ParameterDefinition("delivery_address_confirmed", EntityScope.ORDER),
    ParameterDefinition("tracking_number", EntityScope.ORDER),
    ParameterDefinition("update_type", EntityScope.ORDER),
    ParameterDefinition("product_name", EntityScope.PRODUCT, anchor=True, normalizer=_casefold),
    ParameterDefinition("product_size", EntityScope.PRODUCT),
    ParameterDefinition("height", EntityScope.CONVERSATION),
    ParameterDefinition("fit", EntityScope.CONVERSATION),
    ParameterDefinition("return_type", EntityScope.CONVERSATION),
    ParameterDefinition("returns_website_sent", EntityScope.CONVERSATION),
]


def slots_in_scope(scope: EntityScope) -> list[str]:
    return [d.name for d in PARAMETER_DEFINITIONS if d.scope == scope]


def changed_scopes(previous: ParameterBag, fresh: ParameterBag) -> set[EntityScope]:
    """Scopes whose anchor entity differs between ``previous`` and ``fresh``.

    An anchor only counts as changed when both sides name an entity and
    the normalized names differ; an empty fresh anchor means the message
    did not mention that entity at all.
    """
    changed: set[EntityScope] = set()
    for defn in PARAMETER_DEFINITIONS:
        if not defn.anchor:
            continue
        old = getattr(previous, defn.name)
        new = getattr(fresh, defn.name)
        if not old or not new:
            continue
        normalize = defn.normalizer or (lambda v: v)
        if normalize(old) != normalize(new):
            changed.add(defn.scope)
    return changed


def merge_parameters(previous: ParameterBag, fresh: ParameterBag) -> ParameterBag:
    """Overlay ``fresh`` onto ``previous``.

    Non-empty fresh values win; empty fresh values never erase inherited
    ones. Scopes whose anchor changed are cleared from ``previous`` first.
    """
    inherited = previous.model_dump()
    for scope in changed_scopes(previous, fresh):
        logger.debug("New %s mentioned, dropping inherited %s slots", scope.value, scope.value)
        for name in slots_in_scope(scope):
            inherited.pop(name, None)

    for name, value in fresh.model_dump().items():
        if value:
            inherited[name] = value
    return ParameterBag(**inherited)
