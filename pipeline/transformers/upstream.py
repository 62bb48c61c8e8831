"""
Upstream forge repository detection from free-text project fields
"""

from typing import Optional
import re

from schemas.sources import UpstreamInfo

GITHUB_REGEX = re.compile(r"https?://github\.com/([a-zA-Z0-9._-]+)/([a-zA-Z0-9._-]+)")
GITLAB_REGEX = re.compile(r"https?://(gitlab\.[a-zA-Z0-9._-]+)/([a-zA-Z0-9._-]+)/([a-zA-Z0-9._-]+)")


def _strip_git_suffix(repo: str) -> str:
    return repo[:-4] if repo.endswith(".git") else repo


def parse_upstream_url(url: Optional[str]) -> Optional[UpstreamInfo]:
    """Find the first GitHub or GitLab repository URL in a string"""
    if not url:
        return None

    match = GITHUB_REGEX.search(url)
    if match:
        owner, repo = match.group(1), _strip_git_suffix(match.group(2))
        return UpstreamInfo(
            provider="github",
            host="github.com",
            owner=owner,
            repo=repo,
            url=f"https://github.com/{owner}/{repo}",
        )

    match = GITLAB_REGEX.search(url)
    if match:
        host, owner, repo = match.group(1), match.group(2), _strip_git_suffix(match.group(3))
        return UpstreamInfo(
            provider="gitlab",
            host=host,
            owner=owner,
            repo=repo,
            url=f"https://{host}/{owner}/{repo}",
        )

    return None


def extract_upstream_from_texts(
    homepage: Optional[str] = None,
    clone_url: Optional[str] = None,
    description: Optional[str] = None,
    instructions: Optional[str] = None
) -> Optional[UpstreamInfo]:
    """Check homepage, clone URL, description and instructions in that order"""
    for text in (homepage, clone_url, description, instructions):
        result = parse_upstream_url(text)
        if result:
            return result
    return None
