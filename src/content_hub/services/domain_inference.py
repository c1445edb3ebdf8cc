"""
# Domain Inference

Read-time repair for records written before briefs were always linked to a domain.

Nothing here writes to the database. An inferred `domainId` only exists on the returned view,
where it is flagged with `domainInferred=True` and logged so operators can find and fix the
underlying records.

## Brief resolution rules

1. A brief that already has a `domainId` is left unchanged.
2. Otherwise, when the tenant has domains, the first one (insertion order) is assigned.
3. Otherwise, when the tenant has brand guides, the first guide's `domainId` is borrowed.
4. Otherwise the brief stays without a domain: it only appears in the "all" view.
"""

from typing import Dict, List, Optional, Sequence

from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import BrandGuide, ContentBrief, Domain

logger = get_logger(prefix="[Domain Inference]")

ALL_DOMAINS = "all"


def _fallback_domain_id(domains: Sequence[Domain], brand_guides: Sequence[BrandGuide]) -> Optional[str]:
    if domains:
        return domains[0].id
    for guide in brand_guides:
        if guide.domain_id:
            return guide.domain_id
    return None


def resolve_brief_domains(
    briefs: Sequence[ContentBrief], domains: Sequence[Domain], brand_guides: Sequence[BrandGuide]
) -> List[ContentBrief]:
    """
    Fill in missing `domainId`s on a list of briefs.

    Args:
        briefs (`Sequence[ContentBrief]`): Briefs as stored.
        domains (`Sequence[Domain]`): The tenant's provisioned domains, in insertion order.
        brand_guides (`Sequence[BrandGuide]`): The tenant's brand guides.

    Returns:
        `List[ContentBrief]`: Same order as `briefs`; repaired entries are copies with
        `domain_inferred=True`, untouched entries are the original objects.
    """
    fallback = _fallback_domain_id(domains, brand_guides)
    resolved = []
    for brief in briefs:
        if brief.domain_id or fallback is None:
            resolved.append(brief)
            continue
        logger.warning("Brief %s has no domainId; showing it under inferred domain %s", brief.id, fallback)
        resolved.append(brief.model_copy(update={"domain_id": fallback, "domain_inferred": True}))
    return resolved


def synthesize_domains(
    domains: Sequence[Domain], brand_guides: Sequence[BrandGuide], briefs: Sequence[ContentBrief] = ()
) -> List[Domain]:
    """
    Return `domains` unchanged, or a pseudo-domain list when the tenant has none provisioned.

    Pseudo-domains are deduplicated by id (brand guides first, then briefs), named after their
    own id and flagged `synthesized=True`.
    """
    if domains:
        return list(domains)

    synthesized: Dict[str, Domain] = {}
    for domain_id in [g.domain_id for g in brand_guides] + [b.domain_id for b in briefs]:
        if domain_id and domain_id not in synthesized:
            synthesized[domain_id] = Domain(id=domain_id, name=domain_id, synthesized=True)

    if synthesized:
        logger.warning("No provisioned domains; synthesized %d from existing records", len(synthesized))
    return list(synthesized.values())


def filter_by_domain(briefs: Sequence[ContentBrief], domain_id: Optional[str]) -> List[ContentBrief]:
    """Per-domain view of `briefs`; `None` (or `"all"`) keeps everything, including unlinked briefs."""
    if not domain_id or domain_id == ALL_DOMAINS:
        return list(briefs)
    return [brief for brief in briefs if brief.domain_id == domain_id]
