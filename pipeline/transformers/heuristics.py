"""
Rule-based category heuristics.

Rules are checked in priority order and the first rule with any
satisfied condition wins. Within a rule, conditions are checked as
topic keywords, name keywords, exact language, then description regexes.
Topic and description conditions never fire on empty input.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Pattern
import re

from schemas.classification import ClassificationInput


@dataclass(frozen=True)
class HeuristicRule:
    slug: str
    topic_keywords: List[str] = field(default_factory=list)
    name_keywords: List[str] = field(default_factory=list)
    language_keywords: List[str] = field(default_factory=list)
    description_patterns: List[Pattern] = field(default_factory=list)


RULES: List[HeuristicRule] = [
    HeuristicRule(
        slug="games",
        topic_keywords=["game", "gaming", "godot", "unity3d", "gamedev", "roguelike", "puzzle"],
        description_patterns=[re.compile(r"\bgame\b", re.I), re.compile(r"\bgaming\b", re.I)],
    ),
    HeuristicRule(
        slug="fonts-themes",
        topic_keywords=["font", "icon-theme", "gtk-theme", "cursor-theme", "theme"],
        name_keywords=["font", "theme", "icon", "cursor"],
        language_keywords=["Font"],
    ),
    HeuristicRule(
        slug="command-line",
        topic_keywords=["cli", "terminal", "shell", "command-line", "tui", "ncurses"],
        description_patterns=[
            re.compile(r"\bcommand.line\b", re.I),
            re.compile(r"\bCLI\b"),
            re.compile(r"\bterminal\s+(tool|app|emulator)", re.I),
        ],
    ),
    HeuristicRule(
        slug="libraries",
        topic_keywords=["library", "sdk", "framework", "binding", "bindings", "api-client", "wrapper"],
        name_keywords=["lib"],
        description_patterns=[
            re.compile(r"\blibrary\b", re.I),
            re.compile(r"\bSDK\b", re.I),
            re.compile(r"\bframework\b", re.I),
            re.compile(r"\bbindings?\b", re.I),
        ],
    ),
    HeuristicRule(
        slug="developer-tools",
        topic_keywords=["developer-tools", "devtools", "linter", "formatter", "compiler", "debugger", "ide", "editor"],
        description_patterns=[
            re.compile(r"\btext editor\b", re.I),
            re.compile(r"\bcode editor\b", re.I),
            re.compile(r"\blinter\b", re.I),
            re.compile(r"\bcompiler\b", re.I),
            re.compile(r"\bIDE\b"),
        ],
    ),
    HeuristicRule(
        slug="networking",
        topic_keywords=["networking", "vpn", "proxy", "dns", "http", "web-server"],
        description_patterns=[
            re.compile(r"\bweb browser\b", re.I),
            re.compile(r"\bhttp client\b", re.I),
            re.compile(r"\bVPN\b", re.I),
            re.compile(r"\bproxy\b", re.I),
        ],
    ),
    HeuristicRule(
        slug="audio-video",
        topic_keywords=["audio", "video", "music", "media-player", "streaming", "podcast"],
        description_patterns=[
            re.compile(r"\baudio\b", re.I),
            re.compile(r"\bvideo\b", re.I),
            re.compile(r"\bmedia player\b", re.I),
            re.compile(r"\bmusic\b", re.I),
        ],
    ),
    HeuristicRule(
        slug="graphics",
        topic_keywords=["graphics", "image", "photo", "drawing", "3d", "blender", "gimp"],
        description_patterns=[
            re.compile(r"\bimage editor\b", re.I),
            re.compile(r"\bphoto\b", re.I),
            re.compile(r"\bdrawing\b", re.I),
            re.compile(r"\b3D\b"),
        ],
    ),
    HeuristicRule(
        slug="science",
        topic_keywords=["science", "scientific", "math", "physics", "chemistry", "biology", "astronomy"],
        description_patterns=[re.compile(r"\bscientific\b", re.I), re.compile(r"\bmathematic", re.I)],
    ),
    HeuristicRule(
        slug="system",
        topic_keywords=["system", "sysadmin", "monitoring", "container", "docker", "podman", "kubernetes", "virtualization"],
        description_patterns=[
            re.compile(r"\bsystem\s+admin", re.I),
            re.compile(r"\bmonitoring\b", re.I),
            re.compile(r"\bcontainer\b", re.I),
        ],
    ),
    HeuristicRule(
        slug="office",
        topic_keywords=["office", "productivity", "spreadsheet", "document", "pdf"],
        description_patterns=[
            re.compile(r"\boffice\b", re.I),
            re.compile(r"\bspreadsheet\b", re.I),
            re.compile(r"\bword processor\b", re.I),
        ],
    ),
    HeuristicRule(
        slug="education",
        topic_keywords=["education", "learning", "teaching", "tutorial"],
        description_patterns=[re.compile(r"\beducation", re.I), re.compile(r"\blearning\b", re.I)],
    ),
]


def _rule_matches(
    rule: HeuristicRule,
    topics: List[str],
    name: str,
    language: str,
    description: Optional[str]
) -> bool:
    for keyword in rule.topic_keywords:
        if any(keyword in topic for topic in topics):
            return True

    for keyword in rule.name_keywords:
        if keyword in name:
            return True

    if language and language in rule.language_keywords:
        return True

    if description:
        for pattern in rule.description_patterns:
            if pattern.search(description):
                return True

    return False


def classify_by_heuristics(item: ClassificationInput) -> Optional[str]:
    """Return the slug of the first matching rule, or None"""
    topics = [t.lower() for t in (item.upstream_topics or []) if t]
    name = item.name.lower()
    language = item.upstream_language or ""

    for rule in RULES:
        if _rule_matches(rule, topics, name, language, item.description):
            return rule.slug

    return None
