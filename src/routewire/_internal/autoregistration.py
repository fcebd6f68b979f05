from __future__ import annotations

import datetime
import decimal
import inspect
import pathlib
import uuid
from dataclasses import dataclass
from typing import Any, TypeGuard

from pydantic_settings import BaseSettings

from routewire._internal.type_checks import is_runtime_class
from routewire.types import Lifetime


@dataclass(frozen=True, slots=True)
class ConcreteTypeAutoregistrationPolicy:
    """Internal policy for class autoregistration eligibility."""

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
    )
    singleton_base_types: tuple[type[Any], ...] = (BaseSettings,)

    def is_known_class(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a candidate names a class or interface ``has`` reports.

        Abstract classes and protocols count; builtins and value types do not.

        Args:
            candidate: Value being checked for eligibility or runtime type constraints.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)

    def is_eligible_concrete(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a candidate can be constructed by autowiring.

        Args:
            candidate: Value being checked for eligibility or runtime type constraints.

        """
        if not self.is_known_class(candidate):
            return False
        if getattr(candidate, "_is_protocol", False):
            return False
        return not inspect.isabstract(candidate)

    def lifetime_for(self, candidate: type[Any]) -> Lifetime:
        """Return the lifetime an auto-registered class is stored with.

        Settings classes are read from the environment once, so they are kept
        as singletons; everything else is a transient plain binding.

        Args:
            candidate: Class being auto-registered.

        """
        if issubclass(candidate, self.singleton_base_types):
            return Lifetime.SINGLETON
        return Lifetime.TRANSIENT
