"""Title-grouped near-duplicate detection.

Candidates sharing a normalized strict title form a group. The longest member
(by normalized text length, ties in scan order) is canonical and every other
member is compared against it only: a Hamming distance within the threshold, or
else a Jaccard similarity at or above the threshold, marks it duplicate. Pairs
of non-canonical members are never compared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Set

from .simhash import format_fingerprint, hamming_distance, jaccard_similarity

LOG = logging.getLogger("frame2flat")

DEFAULT_HAMMING_THRESHOLD = 3
DEFAULT_JACCARD_THRESHOLD = 0.98

RULE_HAMMING = "hamming"
RULE_JACCARD = "jaccard"


@dataclass(frozen=True)
class DedupCandidate:
    path: str
    strict_title: str
    display_title: str
    text_length: int
    fingerprint: int
    token_set: FrozenSet[str]
    order: int = 0


@dataclass(frozen=True)
class DuplicateMatch:
    path: str
    rule: str
    hamming: int
    jaccard: Optional[float]


@dataclass
class DedupDecision:
    title: str
    canonical_path: str
    kept_paths: List[str]
    duplicate_paths: List[str]
    threshold_reason: str
    matches: List[DuplicateMatch] = field(default_factory=list)


@dataclass
class DedupResult:
    decisions: List[DedupDecision]
    duplicate_paths: Set[str]
    canonical_by_path: Dict[str, str]


def hamming_reason(threshold: int) -> str:
    return f"Hamming ≤ {threshold}"


def jaccard_reason(threshold: float) -> str:
    return f"Jaccard ≥ {threshold:g}"


def group_by_title(candidates: List[DedupCandidate]) -> Dict[str, List[DedupCandidate]]:
    groups: Dict[str, List[DedupCandidate]] = {}
    for candidate in sorted(candidates, key=lambda c: c.order):
        if not candidate.strict_title:
            continue
        groups.setdefault(candidate.strict_title, []).append(candidate)
    return groups


def order_group(members: List[DedupCandidate]) -> List[DedupCandidate]:
    return sorted(members, key=lambda c: (-c.text_length, c.order))


def classify_against_canonical(
    canonical: DedupCandidate,
    member: DedupCandidate,
    hamming_threshold: int = DEFAULT_HAMMING_THRESHOLD,
    jaccard_threshold: float = DEFAULT_JACCARD_THRESHOLD,
) -> Optional[DuplicateMatch]:
    distance = hamming_distance(canonical.fingerprint, member.fingerprint)
    if distance <= hamming_threshold:
        return DuplicateMatch(path=member.path, rule=RULE_HAMMING, hamming=distance, jaccard=None)
    similarity = jaccard_similarity(canonical.token_set, member.token_set)
    if similarity >= jaccard_threshold:
        return DuplicateMatch(path=member.path, rule=RULE_JACCARD, hamming=distance, jaccard=similarity)
    return None


def _reason_for(matches: List[DuplicateMatch], hamming_threshold: int, jaccard_threshold: float) -> str:
    reasons: List[str] = []
    for match in matches:
        reason = hamming_reason(hamming_threshold) if match.rule == RULE_HAMMING else jaccard_reason(jaccard_threshold)
        if reason not in reasons:
            reasons.append(reason)
    return "; ".join(reasons)


def find_duplicates(
    candidates: List[DedupCandidate],
    hamming_threshold: int = DEFAULT_HAMMING_THRESHOLD,
    jaccard_threshold: float = DEFAULT_JACCARD_THRESHOLD,
) -> DedupResult:
    decisions: List[DedupDecision] = []
    duplicate_paths: Set[str] = set()
    canonical_by_path: Dict[str, str] = {}

    for title, members in group_by_title(candidates).items():
        ordered = order_group(members)
        canonical = ordered[0]
        canonical_by_path[canonical.path] = canonical.path
        if len(ordered) == 1:
            continue

        kept = [canonical.path]
        matches: List[DuplicateMatch] = []
        for member in ordered[1:]:
            canonical_by_path[member.path] = canonical.path
            match = classify_against_canonical(canonical, member, hamming_threshold, jaccard_threshold)
            if match is None:
                kept.append(member.path)
                continue
            matches.append(match)
            LOG.debug(
                "Duplicate %s of %s (%s, hamming=%d)", member.path, canonical.path, match.rule, match.hamming
            )

        if not matches:
            continue
        duplicate_paths.update(m.path for m in matches)
        decisions.append(
            DedupDecision(
                title=title,
                canonical_path=canonical.path,
                kept_paths=kept,
                duplicate_paths=[m.path for m in matches],
                threshold_reason=_reason_for(matches, hamming_threshold, jaccard_threshold),
                matches=matches,
            )
        )

    LOG.info("Dedup: %d group(s) with duplicates, %d duplicate page(s)", len(decisions), len(duplicate_paths))
    return DedupResult(decisions=decisions, duplicate_paths=duplicate_paths, canonical_by_path=canonical_by_path)


def serialize_decision(decision: DedupDecision, fingerprints: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "title": decision.title,
        "canonical": decision.canonical_path,
        "kept": list(decision.kept_paths),
        "duplicates": list(decision.duplicate_paths),
        "reason": decision.threshold_reason,
        "matches": [
            {
                "path": m.path,
                "rule": m.rule,
                "hamming": m.hamming,
                "jaccard": round(m.jaccard, 4) if m.jaccard is not None else None,
            }
            for m in decision.matches
        ],
    }
    if fingerprints:
        out["fingerprints"] = {
            path: format_fingerprint(fingerprints[path])
            for path in decision.kept_paths + decision.duplicate_paths
            if path in fingerprints
        }
    return out


def build_dedup_report(
    result: DedupResult,
    hamming_threshold: int,
    jaccard_threshold: float,
    failures: Optional[List[Dict[str, str]]] = None,
    fingerprints: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    return {
        "thresholds": {"hamming": hamming_threshold, "jaccard": jaccard_threshold},
        "groups": [serialize_decision(d, fingerprints) for d in result.decisions],
        "failures": list(failures or []),
    }
