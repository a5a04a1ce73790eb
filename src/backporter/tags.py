"""
Component / feature tagging for the reporting mode.

Each tag is an independent case-insensitive regex evaluated once against all
changed paths of a commit (joined by newlines). The result is a pair of sets,
so evaluation order never matters.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple

TagTable = Tuple[Tuple[str, "re.Pattern[str]"], ...]


def _table(*pairs: Tuple[str, str]) -> TagTable:
    return tuple((tag, re.compile(pattern, re.IGNORECASE | re.MULTILINE)) for tag, pattern in pairs)


COMPONENT_TAGS = _table(
    ("frontend", r"/frontend/|\.ts$"),
    ("backend", r"/controllers/|/services/"),
    ("api", r"/api/|/controllers/"),
    ("doc", r"^doc/|\.rst$"),
    ("test", r"coveragerc|test|qa/|spec.ts$"),
    ("branding", r"(png|jpg|svg|ico|css|gif)$"),
)

FEATURE_TAGS = _table(
    ("pool", r"pool"),
    ("rgw", r"rgw"),
    ("rbd", r"rbd"),
    ("isci", r"isci|tcmu"),
    ("rbd_mirror", r"rbd_mirror"),
    ("host", r"host"),
    ("cephfs", r"cephfs"),
    ("config", r"configuration"),
    ("auth", r"login|logout|auth|access_control|user|password|credentials"),
    ("grafana", r"grafana"),
    ("osd", r"osd"),
    ("monitor", r"monitor"),
    ("logging", r"logging"),
    ("roles", r"role"),
    ("landing", r"app/ceph/dashboard|health"),
    ("navigation", r"navigation"),
)


@dataclass(frozen=True)
class CommitTags:
    components: FrozenSet[str]
    features: FrozenSet[str]

    def __str__(self) -> str:
        return f"{' '.join(sorted(self.components))} - {' '.join(sorted(self.features))}"


def _matching(table: TagTable, paths_blob: str) -> FrozenSet[str]:
    return frozenset(tag for tag, pattern in table if pattern.search(paths_blob))


def tag_paths(paths: Iterable[str]) -> CommitTags:
    blob = "\n".join(paths)
    return CommitTags(
        components=_matching(COMPONENT_TAGS, blob),
        features=_matching(FEATURE_TAGS, blob),
    )
