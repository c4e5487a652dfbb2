"""Assemble the in-memory adjacency model for one rank computation."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from linkrank.models import AdjacencyModel, Neighborhood


def build_adjacency(
    target_id: str,
    referrers: Iterable[str],
    referrer_out_links: Mapping[str, Sequence[str]],
) -> AdjacencyModel:
    unique_referrers: list[str] = []
    seen: set[str] = set()
    for referrer in referrers:
        if referrer in seen:
            continue
        seen.add(referrer)
        unique_referrers.append(referrer)

    # A page linking to itself is both target and referrer but one node.
    nodes = [target_id, *(node for node in unique_referrers if node != target_id)]
    out_links: dict[str, tuple[str, ...]] = {node: () for node in nodes}
    in_links: dict[str, list[str]] = {node: [] for node in nodes}

    for referrer in unique_referrers:
        targets = tuple(referrer_out_links.get(referrer, ()))
        out_links[referrer] = targets
        for destination in targets:
            if destination in in_links:
                in_links[destination].append(referrer)

    # The target hears every referrer, whatever their outgoing sets say.
    in_links[target_id] = list(unique_referrers)
    return AdjacencyModel(nodes=nodes, out_links=out_links, in_links=in_links)


def adjacency_from_neighborhood(neighborhood: Neighborhood) -> AdjacencyModel:
    return build_adjacency(
        neighborhood.target_id,
        neighborhood.referrers,
        neighborhood.referrer_out_links,
    )
