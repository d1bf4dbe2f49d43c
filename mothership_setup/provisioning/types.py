"""Shared data types for machine providers."""

from dataclasses import dataclass


@dataclass
class MachineHandle:
    """A provisioned host. The address is filled in by a separate inspection call."""

    name: str
    address: str | None = None
