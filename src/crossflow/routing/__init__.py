"""Subscription registry, predicates, and event routing."""

from crossflow.routing.predicates import (
    FieldEquals,
    Predicate,
    StatusTransition,
    predicate_from_dict,
)
from crossflow.routing.registry import Subscription, SubscriptionRegistry
from crossflow.routing.router import DispatchLoop, EventRouter, RoutedResult

__all__ = [
    "DispatchLoop",
    "EventRouter",
    "FieldEquals",
    "Predicate",
    "RoutedResult",
    "StatusTransition",
    "Subscription",
    "SubscriptionRegistry",
    "predicate_from_dict",
]
