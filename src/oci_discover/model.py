from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

DEFAULT_USER = "opc"
DEFAULT_PORT = 22
ERROR_MARKER = "ERROR: "


@dataclass(frozen=True)
class Instance:
    """A RUNNING compute instance as seen by one inventory fetch."""

    id: str
    name: str


@dataclass(frozen=True)
class Target:
    """
    Where remote calls are pointed. Passed explicitly to the fetcher and the
    resolver instead of living in module-level state.
    """

    compartment_id: str
    region: str


@dataclass(frozen=True)
class Resolved:
    address: str

    def annotation(self) -> str:
        return self.address


@dataclass(frozen=True)
class NoAttachment:
    """No VNIC attachment could be found for the instance."""

    sentinel = "NO_VNIC"

    def annotation(self) -> str:
        return f"{ERROR_MARKER}{self.sentinel}"


@dataclass(frozen=True)
class NoAddress:
    """A VNIC attachment exists but no private IP could be read from the VNIC."""

    sentinel = "NO_IP"

    def annotation(self) -> str:
        return f"{ERROR_MARKER}{self.sentinel}"


ResolutionResult = Union[Resolved, NoAttachment, NoAddress]


@dataclass(frozen=True)
class OutputRecord:
    name: str
    result: ResolutionResult
    user: str = DEFAULT_USER
    port: int = DEFAULT_PORT

    @property
    def failed(self) -> bool:
        return not isinstance(self.result, Resolved)

    def as_row(self) -> list[str]:
        return [self.name, self.result.annotation(), self.user, str(self.port)]


@dataclass(frozen=True)
class ArtifactSummary:
    pattern: str
    path: Path
    rows: int
