"""
CAIDA AS-relationship topology provider.

Reads the text form of CAIDA's serial-1 / serial-2 ``as-rel`` datasets:

    # input clique: 174 209 286 ...
    # IXP ASes: 1200 4635 ...
    1|11537|-1
    1|21616|0|bgp

Each data line is ``asn_a|asn_b|rel[|source]`` where -1 means ``asn_a``
is the provider of ``asn_b`` and 0 means the two peer.

Fetching, decompressing and caching the dataset are someone else's job;
this module only turns already-available lines into graph input.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from hijacksim.errors import InvalidTopology
from hijacksim.topology.as_graph import ASGraph, Edge, RankFn

logger = logging.getLogger(__name__)

CLIQUE_HEADER = "# input clique:"
IXP_HEADER = "# IXP ASes:"


@dataclass
class CaidaTopology:
    """
    Parsed AS-relationship data, ready for ``ASGraph.build``.
    """

    edges: list[Edge] = field(default_factory=list)
    tier_1_asns: set[int] = field(default_factory=set)
    ixp_asns: set[int] = field(default_factory=set)


def _parse_asn_list(text: str) -> set[int]:
    return {int(token) for token in text.split() if token.isdigit()}


def parse_as_rel(lines: Iterable[str]) -> CaidaTopology:
    """
    Parse CAIDA as-rel lines.

    Comment lines are skipped except the clique and IXP headers.

    Raises:
        InvalidTopology: a data line does not have at least three
            ``|``-separated integer fields.
    """
    topology = CaidaTopology()

    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith("#"):
            if line.startswith(CLIQUE_HEADER):
                topology.tier_1_asns |= _parse_asn_list(line[len(CLIQUE_HEADER):])
            elif line.startswith(IXP_HEADER):
                topology.ixp_asns |= _parse_asn_list(line[len(IXP_HEADER):])
            continue

        fields = line.split("|")
        if len(fields) < 3:
            raise InvalidTopology(f"Line {line_number}: expected asn|asn|rel, got {line!r}")
        try:
            edge = (int(fields[0]), int(fields[1]), int(fields[2]))
        except ValueError as exc:
            raise InvalidTopology(f"Line {line_number}: non-integer field in {line!r}") from exc
        topology.edges.append(edge)

    return topology


def load_as_rel(path: Path) -> CaidaTopology:
    """
    Read a local, uncompressed CAIDA as-rel file.

    Raises:
        InvalidTopology: the file is not UTF-8 text or a line is malformed.
    """
    with Path(path).open("r", encoding="utf-8") as fh:
        try:
            topology = parse_as_rel(fh)
        except UnicodeDecodeError as exc:
            raise InvalidTopology(f"{path}: not UTF-8 text") from exc

    logger.info(
        "Loaded %d relationships from %s (%d tier-1, %d IXPs)",
        len(topology.edges),
        path,
        len(topology.tier_1_asns),
        len(topology.ixp_asns),
    )
    return topology


def build_graph(topology: CaidaTopology, rank_fn: RankFn | None = None) -> ASGraph:
    return ASGraph.build(
        topology.edges,
        rank_fn=rank_fn,
        tier_1_asns=topology.tier_1_asns,
        ixp_asns=topology.ixp_asns,
    )
