# ABOUTME: Category tree builder over a flat ID-keyed arena of category nodes
# ABOUTME: Resolves hierarchical reference paths once per node and guards against cyclic parent chains

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from lore_scribe.persistence.models import RegistryEntry
from lore_scribe.utils.logging import get_logger

CATEGORY_SLUG_SUFFIX = "-category"

logger = get_logger(__name__)


def strip_suffix(slug: str, suffix: str = CATEGORY_SLUG_SUFFIX) -> str:
    """``world-category`` -> ``world``."""
    return slug.removesuffix(suffix)


@dataclass(slots=True)
class CategoryNode:
    """Arena entry: links are IDs, never object references."""

    id: str
    segment: str
    parent_id: str | None = None
    child_ids: list[str] = field(default_factory=list)
    reference_path: str | None = None


@dataclass
class CategoryTree:
    """Flat map of category nodes with memoized path resolution."""

    nodes: dict[str, CategoryNode] = field(default_factory=dict)
    cycle_breaks: list[str] = field(default_factory=list)

    @classmethod
    def from_entries(cls, entries: Iterable[RegistryEntry]) -> CategoryTree:
        tree = cls()
        for entry in entries:
            if not entry.is_category or entry.id in tree.nodes:
                continue
            tree.nodes[entry.id] = CategoryNode(
                id=entry.id,
                segment=strip_suffix(entry.slug) or entry.id,
                parent_id=entry.parent_id,
                # Paths persisted by an earlier run are kept as-is
                reference_path=entry.reference_path,
            )
        return tree

    def parent_of(self, node: CategoryNode) -> CategoryNode | None:
        """The parent node, or None for roots and dangling parent IDs."""
        if node.parent_id is None:
            return None
        return self.nodes.get(node.parent_id)

    def resolve_path(self, node_id: str) -> str:
        """Resolve (and cache) the reference path of one node.

        Walks up the parent chain until a resolved ancestor or a root is
        reached, then assigns paths top-down so every ancestor is cached
        before its descendants. A chain that re-enters itself is broken by
        treating the re-entered node as a root.
        """
        node = self.nodes[node_id]
        if node.reference_path is not None:
            return node.reference_path

        chain: list[CategoryNode] = []
        on_chain: set[str] = set()
        current: CategoryNode | None = node

        while current is not None and current.reference_path is None:
            if current.id in on_chain:
                logger.warning("Cyclic category parent chain, treating node as root", category_id=current.id)
                self.cycle_breaks.append(current.id)
                current.reference_path = current.segment
                break
            on_chain.add(current.id)
            chain.append(current)
            current = self.parent_of(current)

        for pending in reversed(chain):
            if pending.reference_path is not None:
                continue
            parent = self.parent_of(pending)
            pending.reference_path = (
                f"{parent.reference_path}/{pending.segment}" if parent is not None else pending.segment
            )

        if node.reference_path is None:
            raise RuntimeError(f"Category {node_id} was left without a reference path")
        return node.reference_path

    def resolve_all(self) -> dict[str, str]:
        """Resolve every node (in ID order, so cycle breaks are deterministic) and rebuild child indexes."""
        paths = {node_id: self.resolve_path(node_id) for node_id in sorted(self.nodes)}

        for node in self.nodes.values():
            node.child_ids = []
        # Only nodes whose path actually descends from the parent are listed, which keeps
        # cycle-broken roots out of the index on this and every later run
        for node in self.nodes.values():
            parent = self.parent_of(node)
            if parent is not None and node.reference_path == f"{parent.reference_path}/{node.segment}":
                parent.child_ids.append(node.id)

        return paths

    def apply_to_entries(self, entries: Iterable[RegistryEntry]) -> tuple[int, bool]:
        """Write resolved paths and child indexes back onto registry entries.

        Returns (paths newly assigned, whether any entry changed).
        """
        assigned = 0
        changed = False
        for entry in entries:
            node = self.nodes.get(entry.id)
            if node is None or not entry.is_category:
                continue
            if entry.reference_path is None and node.reference_path is not None:
                entry.reference_path = node.reference_path
                assigned += 1
                changed = True
            if entry.children != node.child_ids:
                entry.children = list(node.child_ids)
                changed = True
        return assigned, changed


def build_category_tree(entries: list[RegistryEntry]) -> tuple[CategoryTree, int, bool]:
    """Build the tree for the category entries, resolve it, and write results back in place."""
    tree = CategoryTree.from_entries(entries)
    tree.resolve_all()
    assigned, changed = tree.apply_to_entries(entries)
    logger.info(
        "Category tree resolved",
        categories=len(tree.nodes),
        paths_assigned=assigned,
        cycle_breaks=len(tree.cycle_breaks),
    )
    return tree, assigned, changed
