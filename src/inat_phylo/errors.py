"""Exceptions raised across the pipeline.

Only two failures stop a run: a caller mistake detected before any I/O
(``InvalidArgument``) and a stage that produced no usable data at all
(``ServiceUnavailable``). Partial losses (failed pages, unmatched names,
taxa the synthetic tree doesn't contain) are logged and absorbed by the
stage that sees them.
"""

from __future__ import annotations

from typing import Any


class InvalidArgument(ValueError):
    """A required argument is missing or malformed."""


class ServiceUnavailable(RuntimeError):
    """An external service returned nothing usable."""


class RequestRejected(ServiceUnavailable):
    """The service answered with a client error (4xx) and a JSON body."""

    def __init__(self, message: str, status: int, payload: dict[str, Any]) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (str(self), self.status, self.payload))


class UnknownTaxa(ServiceUnavailable):
    """Some OTT ids are not nodes of the synthetic tree."""

    def __init__(self, ott_ids: list[int]) -> None:
        super().__init__(f"{len(ott_ids)} OTT ids not in the synthetic tree: {ott_ids}")
        self.ott_ids = ott_ids

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.ott_ids,))


class UnknownNodeLabel(KeyError):
    """No node of the tree carries this label."""

    def __init__(self, label: str) -> None:
        super().__init__(label)
        self.label = label

    def __str__(self) -> str:
        return f"no tree node labelled {self.label!r}"
