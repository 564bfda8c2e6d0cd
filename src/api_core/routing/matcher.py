"""Path template matching for route lookup."""

from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import unquote


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    params: Dict[str, str] = field(default_factory=dict)


NO_MATCH = MatchResult(matched=False)


def is_param_segment(segment: str) -> bool:
    return len(segment) >= 2 and segment.startswith("{") and segment.endswith("}")


def match_path(template: str, path: str) -> MatchResult:
    """
    Match a route template such as ``/users/{id}`` against a request path.

    Segment counts must be equal. ``{name}`` segments capture the
    percent-decoded path segment, literal segments must be equal
    (case-sensitive).

    Returns:
        MatchResult with the captured params, or a non-match with no params
    """
    template_parts = template.split("/")
    path_parts = path.split("/")

    if len(template_parts) != len(path_parts):
        return NO_MATCH

    params: Dict[str, str] = {}
    for template_part, path_part in zip(template_parts, path_parts):
        if is_param_segment(template_part):
            params[template_part[1:-1]] = unquote(path_part)
        elif template_part != path_part:
            return NO_MATCH

    return MatchResult(matched=True, params=params)
