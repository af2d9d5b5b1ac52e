"""Link classification and resolution against a sealed registry"""

import logging

from mdcorpus.core.extract.headings import find_heading
from mdcorpus.core.models import LinkType, ResourceLink, ResourceMetadata
from mdcorpus.core.registry import ResourceRegistry
from mdcorpus.core.utils.paths import resolve_href, split_href_anchor


logger = logging.getLogger(__name__)


def classify_link(href: str, source_path: str = "") -> LinkType:
    """Classify href by prefix; anything that cannot be placed inside the project is unknown."""
    lowered = href.lower()
    if lowered.startswith('mailto:'):
        return LinkType.email
    if lowered.startswith(('http://', 'https://')):
        return LinkType.external
    if href.startswith('#'):
        return LinkType.anchor
    base, _ = split_href_anchor(href)
    if base and resolve_href(base, source_path) is not None:
        return LinkType.local_file
    return LinkType.unknown


def resolve_link(link: ResourceLink, source: ResourceMetadata, registry: ResourceRegistry) -> ResourceLink:
    """Return a copy of link with its target filled in. Never raises; unmatched targets stay None."""
    if link.type == LinkType.anchor:
        heading = find_heading(source.headings, link.href[1:])
        return link.model_copy(update={'anchor_target': heading.slug if heading else None})

    if link.type == LinkType.local_file:
        base, fragment = split_href_anchor(link.href)
        target_path = resolve_href(base, source.file_path)
        target = registry.get_by_path(target_path) if target_path else None
        anchor_target = None
        if target is not None and fragment:
            heading = find_heading(target.headings, fragment)
            anchor_target = heading.slug if heading else None
        return link.model_copy(update={
            'resolved_path': target_path,
            'resolved_id': target.id if target else None,
            'anchor_target': anchor_target,
        })

    return link


def resolve_resource(resource: ResourceMetadata, registry: ResourceRegistry) -> ResourceMetadata:
    """Copy of resource with every link resolved against registry."""
    links = [resolve_link(link, resource, registry) for link in resource.links]
    return resource.model_copy(update={'links': links})


def resolve_registry(registry: ResourceRegistry) -> ResourceRegistry:
    """Resolve all links in a sealed registry; returns a new sealed registry."""
    if not registry.sealed:
        raise RuntimeError("Registry must be sealed before links are resolved")
    resolved = ResourceRegistry.from_resources(resolve_resource(r, registry) for r in registry)
    unresolved = sum(
        1 for r in resolved for link in r.links
        if link.type == LinkType.local_file and link.resolved_id is None
    )
    logger.debug("Resolved %d resource(s); %d local link(s) without a target", len(resolved), unresolved)
    return resolved
