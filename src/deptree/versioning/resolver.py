"""NPM range constraint resolution using semantic versioning.

``resolve_constraint`` is pure: the same constraint and version set always
select the same version, whatever order the versions arrive in.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

import semantic_version

from deptree.exceptions import InvalidConstraint, NoCompatibleVersion

logger = logging.getLogger(__name__)

# npm spellings NpmSpec does not know.
_OPERATOR_ALIASES = (("~>", "~"), ("=>", ">="), ("=<", "<="))
# ">= 1.2.3" -> ">=1.2.3"; npm tolerates the space, NpmSpec does not.
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~)\s+(?=[0-9vxX*])")
# Leading "v" on an operand: "^v1.2.0", "=v1.2.0", "1.0.0 - v2.0.0".
_V_PREFIX_RE = re.compile(r"(^|[\s|<>=^~])v(?=\d)")
# Build metadata never takes part in matching.
_BUILD_RE = re.compile(r"(?<=[0-9A-Za-z])\+[0-9A-Za-z.\-]+")
_EXACT_RE = re.compile(r"^\s*=?\s*v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.\-]+)?)(?:\+[0-9A-Za-z.\-]+)?\s*$")


def normalize_constraint(constraint: Optional[str]) -> str:
    """Normalize npm range syntax into a form NpmSpec accepts.

    Empty and ``latest`` mean any version. Comma separated comparators are
    treated as intersections, the way space separated ones are. A leading
    ``v`` on a version and any ``+build`` suffix are dropped, and the
    ``~>``, ``=>`` and ``=<`` operator spellings are rewritten.
    """
    if constraint is None:
        return "*"
    s = constraint.strip()
    if not s or s.lower() == "latest":
        return "*"
    s = s.replace(",", " ")
    for alias, operator in _OPERATOR_ALIASES:
        s = s.replace(alias, operator)
    s = _OPERATOR_SPACE_RE.sub(r"\1", s)
    s = _V_PREFIX_RE.sub(r"\1", s)
    s = _BUILD_RE.sub("", s)
    return " ".join(s.split())


def parse_constraint(constraint: Optional[str]) -> semantic_version.NpmSpec:
    """Parse a range expression.

    Raises:
        InvalidConstraint: if the expression is malformed.
    """
    normalized = normalize_constraint(constraint)
    try:
        return semantic_version.NpmSpec(normalized)
    except ValueError as exc:
        raise InvalidConstraint(constraint or "", str(exc)) from exc


def exact_version(text: Optional[str]) -> Optional[str]:
    """Return the canonical version string if ``text`` names exactly one version."""
    if not text:
        return None
    m = _EXACT_RE.match(text)
    if not m:
        return None
    try:
        return str(semantic_version.Version(m.group(1)))
    except ValueError:
        return None


def parse_versions(raw_versions: Iterable[str]) -> List[semantic_version.Version]:
    """Parse version strings, skipping anything that is not valid semver."""
    parsed = []
    for v in raw_versions:
        try:
            parsed.append(semantic_version.Version(v))
        except ValueError:
            logger.debug("Skipping non-semver version %r", v)
            continue
    return parsed


def resolve_constraint(
    constraint: Optional[str],
    available: Iterable[semantic_version.Version],
) -> semantic_version.Version:
    """Select the highest version in ``available`` satisfying ``constraint``.

    Args:
        constraint: npm range expression, e.g. ``^1.2.0``.
        available: Versions the registry advertises.

    Returns:
        The maximum satisfying version under semver precedence.

    Raises:
        InvalidConstraint: malformed expression.
        NoCompatibleVersion: nothing in ``available`` satisfies it.
    """
    spec = parse_constraint(constraint)
    candidates = list(available)
    matching = [v for v in candidates if spec.match(v)]
    if not matching:
        raise NoCompatibleVersion(constraint or "", len(candidates))
    return max(matching)
