"""Subscription and function request schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionData(BaseModel):
    """Subscription create/update request."""

    model_config = ConfigDict(populate_by_name=True)

    sink: str = Field(min_length=1, description="URL events are delivered to")
    app_name: str = Field(alias="appName", min_length=1, description="Source application")
    event_name: str = Field(alias="eventName", min_length=1, description="Event name")
    event_version: str = Field(alias="eventVersion", min_length=1, description="Event version")


class FunctionData(BaseModel):
    """Function update request. Omitted fields keep their current value."""

    source: str | None = Field(default=None, description="Function source code")
    deps: str | None = Field(default=None, description="Dependency manifest")
    runtime: str | None = Field(default=None, description="Runtime, e.g. nodejs16")


class TinyFunction(BaseModel):
    """Function reduced to what the editor needs."""

    name: str
    namespace: str
    source: str
