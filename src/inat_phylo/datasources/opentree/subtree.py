"""Induced subtree of the Open Tree synthetic tree."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

from inat_phylo.datasources.opentree import client
from inat_phylo.errors import InvalidArgument, RequestRejected, ServiceUnavailable, UnknownTaxa

LabelFormat = Literal["name", "id", "name_and_id"]
LABEL_FORMATS: tuple[str, ...] = ("name", "id", "name_and_id")

# The service needs two tips to induce a tree.
MIN_OTT_IDS = 2

_OTT_ID = re.compile(r"^ott(\d+)$")
_NOT_FOUND = re.compile(r"node_id 'ott(\d+)' was not found")


@dataclass
class InducedSubtree:
    """Newick text of the minimal tree spanning the requested taxa."""

    newick: str
    label_format: str = "name"
    broken: dict[str, str] = field(default_factory=dict)


def unknown_ott_ids(payload: dict[str, Any]) -> list[int]:
    """OTT ids a rejected request names as missing from the synthetic tree.

    Reads the ``unknown`` mapping (``{"ott123": "pruned_ott_id", ...}``) and
    falls back to ``node_id 'ott123' was not found`` in the message.
    """
    found: list[int] = []
    unknown = payload.get("unknown")
    if isinstance(unknown, dict):
        for key in unknown:
            match = _OTT_ID.match(str(key))
            if match:
                found.append(int(match.group(1)))
    message = payload.get("message")
    if isinstance(message, str):
        found.extend(int(m) for m in _NOT_FOUND.findall(message))
    return list(dict.fromkeys(found))


def induced_subtree(
    ott_ids: list[int],
    label_format: LabelFormat = "name",
    *,
    api_base: str = client.API_BASE,
    timeout: float = client.DEFAULT_TIMEOUT,
) -> InducedSubtree:
    """
    Fetch the induced subtree for a set of OTT ids.

    The Newick returned by the service keeps unary internal nodes with their
    clade names. Persist it verbatim (``tree.write_newick``) to keep those
    labels; collapsing them is an explicit, separate step.

    Args:
        ott_ids: Taxa to span, at least two.
        label_format: Node labels: ``name``, ``id`` (ott123) or ``name_and_id``.
        api_base: API root URL.
        timeout: Request timeout in seconds.

    Raises:
        InvalidArgument: Fewer than two ids or unknown label format.
        UnknownTaxa: The service refused ids that aren't in the synthetic tree.
        ServiceUnavailable: Request failed or the response has no tree.
    """
    if len(ott_ids) < MIN_OTT_IDS:
        msg = f"induced_subtree needs at least {MIN_OTT_IDS} OTT ids, got {len(ott_ids)}"
        raise InvalidArgument(msg)
    if label_format not in LABEL_FORMATS:
        msg = f"label_format must be one of {LABEL_FORMATS}, got {label_format!r}"
        raise InvalidArgument(msg)

    try:
        data = client.post(
            "tree_of_life/induced_subtree",
            {"ott_ids": list(ott_ids), "label_format": label_format},
            api_base=api_base,
            timeout=timeout,
        )
    except RequestRejected as e:
        missing = [i for i in unknown_ott_ids(e.payload) if i in ott_ids]
        if missing:
            raise UnknownTaxa(missing) from e
        raise

    newick = data.get("newick")
    if not newick:
        msg = "induced_subtree response contained no newick"
        raise ServiceUnavailable(msg)
    return InducedSubtree(
        newick=newick,
        label_format=label_format,
        broken=data.get("broken") or {},
    )


class OpenTreeSubtreeProvider:
    """Subtree provider backed by the live synthetic tree."""

    def __init__(
        self, api_base: str = client.API_BASE, *, timeout: float = client.DEFAULT_TIMEOUT
    ) -> None:
        self.api_base = api_base
        self.timeout = timeout

    def induced_subtree(self, ott_ids: list[int], label_format: LabelFormat) -> InducedSubtree:
        return induced_subtree(ott_ids, label_format, api_base=self.api_base, timeout=self.timeout)
