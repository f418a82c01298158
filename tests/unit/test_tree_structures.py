"""
Unit tests for tree snapshot structures and loop detection.
"""

from referral_engine.models.enums import Position
from referral_engine.services.tree.audit import TreeAuditService
from referral_engine.services.tree.materializer import TreeNode


def node(id: int, level: int, position=None, children=None) -> TreeNode:
    return TreeNode(
        id=id,
        referral_code=f"code{id}",
        display_name="",
        position=position,
        level=level,
        children=children or [],
    )


class TestTreeNode:
    def test_depth_counts_levels_below(self):
        grandchild = node(3, 2, Position.LEFT)
        child = node(2, 1, Position.LEFT, [grandchild])
        root = node(1, 0, None, [child, node(4, 1, Position.RIGHT)])

        assert root.depth() == 2
        assert child.depth() == 1
        assert grandchild.depth() == 0

    def test_to_dict_nests_children(self):
        root = node(1, 0, None, [node(2, 1, Position.LEFT)])

        data = root.to_dict()

        assert data["position"] is None
        assert data["children"][0]["position"] == "left"
        assert data["children"][0]["children"] == []


class TestCycleDetection:
    def test_sound_tree_has_no_cycles(self):
        links = {1: (None, None), 2: (1, "left"), 3: (1, "right"), 4: (2, "left")}
        assert TreeAuditService._find_cycles(links) == []

    def test_detects_loop(self):
        links = {1: (None, None), 2: (3, "left"), 3: (2, "left")}

        issues = TreeAuditService._find_cycles(links)

        assert len(issues) == 1
        assert "2 -> 3" in issues[0]

    def test_self_parent(self):
        links = {5: (5, "left")}
        assert TreeAuditService._find_cycles(links) == ["Parent chain loops: 5"]
