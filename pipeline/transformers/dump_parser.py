"""
Aggregators for rows extracted from the COPR database dump.

Both folds are pure: they take raw COPY rows and return per-entity
totals. Malformed rows are dropped without raising.
"""

from typing import Dict, Iterable, Optional
from schemas.sources import DownloadStats

DOWNLOADS_COUNTER = "project_rpms_dl"
DOWNLOADS_PREFIX = "project_rpms_dl_stat:hset::"
REPO_ENABLES_COUNTER = "repo_dl"
REPO_ENABLES_PREFIX = "repo_dl_stat::"


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except (ValueError, AttributeError):
        return None


def parse_copr_score_lines(lines: Iterable[str]) -> Dict[int, int]:
    """
    Sum vote rows per project.

    Row format: id, copr_id, user_id, score (tab separated).

    Returns:
        copr_id -> net score
    """
    scores: Dict[int, int] = {}

    for line in lines:
        parts = line.split("\t")
        if len(parts) < 4:
            continue

        copr_id = _to_int(parts[1])
        score = _to_int(parts[3])
        if copr_id is None or score is None:
            continue

        scores[copr_id] = scores.get(copr_id, 0) + score

    return scores


def parse_owner_at_name(raw: str) -> str:
    """
    Convert "owner@name" to "owner/name".

    Group owners carry a leading "@" ("@group@name"), so the delimiter
    is the second "@" in that case.
    """
    start = 1 if raw.startswith("@") else 0
    at_idx = raw.find("@", start)
    if at_idx == -1:
        return raw
    return f"{raw[:at_idx]}/{raw[at_idx + 1:]}"


def parse_counter_stat_lines(lines: Iterable[str]) -> Dict[str, DownloadStats]:
    """
    Sum download counters per project.

    Row format: name, counter_type, counter (tab separated). Two counter
    types are used:

    - project_rpms_dl: name is "project_rpms_dl_stat:hset::{owner}@{name}",
      summed into downloads
    - repo_dl: name is "repo_dl_stat::{owner}@{name}:{chroot}", summed
      into repo_enables after dropping the chroot suffix

    Returns:
        "owner/name" -> DownloadStats
    """
    stats: Dict[str, DownloadStats] = {}

    for line in lines:
        parts = line.split("\t")
        if len(parts) < 3:
            continue

        name, counter_type, counter_str = parts[0], parts[1], parts[2]
        counter = _to_int(counter_str)
        if counter is None:
            continue

        if counter_type == DOWNLOADS_COUNTER:
            if not name.startswith(DOWNLOADS_PREFIX):
                continue
            key = parse_owner_at_name(name[len(DOWNLOADS_PREFIX):])
            entry = stats.setdefault(key, DownloadStats())
            entry.downloads += counter

        elif counter_type == REPO_ENABLES_COUNTER:
            if not name.startswith(REPO_ENABLES_PREFIX):
                continue
            rest = name[len(REPO_ENABLES_PREFIX):]
            last_colon = rest.rfind(":")
            owner_at_name = rest if last_colon == -1 else rest[:last_colon]
            key = parse_owner_at_name(owner_at_name)
            entry = stats.setdefault(key, DownloadStats())
            entry.repo_enables += counter

        # other counter types (chroot_rpms_dl, ...) are ignored

    return stats
