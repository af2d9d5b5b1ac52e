"""Resource registry: write-once index of resources by ID, path, file name, and checksum"""

import logging
from collections import Counter
from typing import Iterable, Iterator, Optional

from mdcorpus.core.models import CollectionStats, RegistryStats, ResourceMetadata
from mdcorpus.core.utils.paths import matches_glob


logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Resources keyed by unique ID with secondary indexes.

    Mutable only until seal(). After that it is a read-only value that the
    resolver, validator, and transformer can share, including across threads.
    Iteration follows insertion order.
    """

    def __init__(self, resources: Iterable[ResourceMetadata] = ()):
        self._by_id: dict[str, ResourceMetadata] = {}
        self._by_path: dict[str, ResourceMetadata] = {}
        self._by_name: dict[str, list[ResourceMetadata]] = {}
        self._by_checksum: dict[str, list[ResourceMetadata]] = {}
        self._sealed = False
        for resource in resources:
            self.insert(resource)

    @classmethod
    def from_resources(cls, resources: Iterable[ResourceMetadata]) -> "ResourceRegistry":
        """Build and seal a registry in one step."""
        registry = cls(resources)
        registry.seal()
        return registry

    def insert(self, resource: ResourceMetadata) -> ResourceMetadata:
        """Add resource. On a duplicate ID or path the first entry wins and is returned."""
        if self._sealed:
            raise RuntimeError("Registry is sealed; build a new registry to add resources")
        existing = self._by_id.get(resource.id)
        if existing is not None:
            logger.warning("Duplicate resource id %r: keeping %s, ignoring %s",
                           resource.id, existing.file_path, resource.file_path)
            return existing
        existing = self._by_path.get(resource.file_path)
        if existing is not None:
            logger.warning("Duplicate resource path %s: keeping id %r, ignoring id %r",
                           resource.file_path, existing.id, resource.id)
            return existing
        self._by_id[resource.id] = resource
        self._by_path[resource.file_path] = resource
        self._by_name.setdefault(resource.name, []).append(resource)
        self._by_checksum.setdefault(resource.checksum, []).append(resource)
        return resource

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[ResourceMetadata]:
        return iter(list(self._by_id.values()))

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._by_id

    def get_by_id(self, resource_id: str) -> Optional[ResourceMetadata]:
        return self._by_id.get(resource_id)

    def get_by_path(self, file_path: str) -> Optional[ResourceMetadata]:
        return self._by_path.get(file_path)

    def by_name(self, name: str) -> list[ResourceMetadata]:
        """Resources whose file name (last path segment) is name."""
        return list(self._by_name.get(name, []))

    def by_checksum(self, checksum: str) -> list[ResourceMetadata]:
        return list(self._by_checksum.get(checksum, []))

    def by_pattern(self, pattern: str) -> list[ResourceMetadata]:
        """Resources whose project path matches a glob pattern."""
        return [r for r in self._by_id.values() if matches_glob(r.file_path, pattern)]

    def duplicates(self) -> list[list[ResourceMetadata]]:
        """Groups of two or more resources with identical content."""
        return [list(group) for group in self._by_checksum.values() if len(group) > 1]

    def unique_by_checksum(self) -> list[ResourceMetadata]:
        """First resource of each distinct content checksum, in insertion order."""
        return [group[0] for group in self._by_checksum.values()]

    def stats(self) -> RegistryStats:
        links_by_type = Counter(link.type.value for r in self._by_id.values() for link in r.links)
        return RegistryStats(
            total_resources=len(self._by_id),
            total_links=sum(links_by_type.values()),
            links_by_type=dict(links_by_type),
        )

    def collection_stats(self, collections: dict) -> dict[str, CollectionStats]:
        """Per-collection resource counts for a name -> CollectionConfig mapping."""
        stats = {}
        for name, config in collections.items():
            validation = config.validation
            stats[name] = CollectionStats(
                resource_count=sum(1 for r in self._by_id.values() if name in (r.collections or [])),
                has_schema=bool(validation and validation.frontmatter_schema),
                validation_mode=validation.mode if validation else None,
            )
        return stats
