"""Shared type aliases and typed dictionaries."""

from __future__ import annotations

from typing import TypeAlias, TypedDict

JSONValue: TypeAlias = (
    str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
)
JSONObject: TypeAlias = dict[str, JSONValue]


class UserPayload(TypedDict):
    """Persisted user entry (tokens are never written)."""

    name: str
    age: int
    weightKg: float
    heightM: float
    password: str


class WaterPayload(TypedDict):
    """Persisted water record."""

    date: str
    amountMl: float


class SleepPayload(TypedDict):
    """Persisted sleep record."""

    date: str
    hours: float


class ActivityPayload(TypedDict):
    """Persisted activity record."""

    date: str
    minutes: int
    intensity: str


class OtherPayload(TypedDict):
    """Persisted record of a user-defined category."""

    date: str
    value: float
    note: str


class SnapshotDocument(TypedDict, total=False):
    """Top-level snapshot document; every section is optional on load."""

    users: list[UserPayload]
    water: dict[str, list[WaterPayload]]
    sleep: dict[str, list[SleepPayload]]
    activity: dict[str, list[ActivityPayload]]
    other: dict[str, dict[str, list[OtherPayload]]]
