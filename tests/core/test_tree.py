# ABOUTME: Tests for category tree path resolution
# ABOUTME: Validates suffix stripping, dangling parents, stored path stability, and cycle breaking

from lore_scribe.core.tree import CategoryTree, build_category_tree, strip_suffix
from lore_scribe.persistence.models import EntityClass, RegistryEntry


def _category(entry_id: str, slug: str, parent_id: str | None = None, **fields) -> RegistryEntry:
    return RegistryEntry(
        id=entry_id,
        entity_class=EntityClass.CATEGORY,
        title=slug.title(),
        slug=slug,
        url=f"https://world.test/{entry_id}",
        parent_id=parent_id,
        children=[],
        **fields,
    )


class TestStripSuffix:
    def test_strips_category_suffix(self):
        assert strip_suffix("world-category") == "world"

    def test_leaves_other_slugs_alone(self):
        assert strip_suffix("category-of-things") == "category-of-things"


class TestPathResolution:
    """Test hierarchical reference paths."""

    def test_root_and_nested_paths(self):
        entries = [
            _category("c3", "dukes-category", parent_id="c2"),
            _category("c1", "world-category"),
            _category("c2", "kingdoms-category", parent_id="c1"),
        ]

        tree, assigned, changed = build_category_tree(entries)

        paths = {e.id: e.reference_path for e in entries}
        assert paths == {"c1": "world", "c2": "world/kingdoms", "c3": "world/kingdoms/dukes"}
        assert assigned == 3
        assert changed is True
        assert tree.cycle_breaks == []

    def test_children_index(self):
        entries = [
            _category("c1", "world-category"),
            _category("c2", "kingdoms-category", parent_id="c1"),
            _category("c3", "seas-category", parent_id="c1"),
        ]

        build_category_tree(entries)

        assert entries[0].children == ["c2", "c3"]
        assert entries[1].children == []

    def test_dangling_parent_is_treated_as_root(self):
        entries = [_category("c1", "orphans-category", parent_id="gone")]

        build_category_tree(entries)

        assert entries[0].reference_path == "orphans"

    def test_missing_slug_falls_back_to_id(self):
        entries = [_category("c1", "")]

        build_category_tree(entries)

        assert entries[0].reference_path == "c1"

    def test_stored_paths_are_kept(self):
        """A path persisted by an earlier run is not recomputed."""
        entries = [
            _category("c1", "world-category", reference_path="legacy"),
            _category("c2", "kingdoms-category", parent_id="c1"),
        ]

        build_category_tree(entries)

        assert entries[0].reference_path == "legacy"
        assert entries[1].reference_path == "legacy/kingdoms"

    def test_second_build_reports_no_change(self):
        entries = [_category("c1", "world-category"), _category("c2", "kingdoms-category", parent_id="c1")]
        build_category_tree(entries)

        _, assigned, changed = build_category_tree(entries)

        assert assigned == 0
        assert changed is False

    def test_non_category_entries_are_ignored(self):
        article = RegistryEntry(id="a1", entity_class=EntityClass.ARTICLE, slug="a1", url="https://world.test/a1")

        tree, _, _ = build_category_tree([article])

        assert tree.nodes == {}
        assert article.reference_path is None


class TestCycles:
    """Cyclic parent chains terminate and break at a deterministic node."""

    def test_two_node_cycle(self):
        entries = [
            _category("b", "beta-category", parent_id="a"),
            _category("a", "alpha-category", parent_id="b"),
        ]

        tree, _, _ = build_category_tree(entries)

        paths = {e.id: e.reference_path for e in entries}
        assert paths == {"a": "alpha", "b": "alpha/beta"}
        assert tree.cycle_breaks == ["a"]
        assert tree.nodes["a"].child_ids == ["b"]
        assert tree.nodes["b"].child_ids == []

    def test_self_parent(self):
        entries = [_category("a", "alpha-category", parent_id="a")]

        tree, _, _ = build_category_tree(entries)

        assert entries[0].reference_path == "alpha"
        assert tree.cycle_breaks == ["a"]

    def test_branch_hanging_off_a_cycle(self):
        tree = CategoryTree.from_entries(
            [
                _category("a", "alpha-category", parent_id="c"),
                _category("b", "beta-category", parent_id="a"),
                _category("c", "gamma-category", parent_id="b"),
                _category("d", "delta-category", parent_id="c"),
            ]
        )

        paths = tree.resolve_all()

        assert paths["a"] == "alpha"
        assert paths["b"] == "alpha/beta"
        assert paths["c"] == "alpha/beta/gamma"
        assert paths["d"] == "alpha/beta/gamma/delta"
        assert tree.cycle_breaks == ["a"]

    def test_cyclic_input_is_stable_across_runs(self):
        entries = [
            _category("b", "beta-category", parent_id="a"),
            _category("a", "alpha-category", parent_id="b"),
        ]
        build_category_tree(entries)

        _, assigned, changed = build_category_tree(entries)

        assert assigned == 0
        assert changed is False
        assert [e.children for e in entries] == [[], ["b"]]
