"""Bounding volume hierarchy over the scene's shapes.

The hierarchy is built on the host as a flat list of nodes (the arena).
Children are always appended before their parent, so node indices are
assigned bottom-up and the root is the last node. The arena is then copied
into Taichi fields, where ``scene.intersection.intersect_scene`` walks it
with an explicit stack.

Shapes are never reordered: the build sorts a permutation of shape indices,
and each leaf keeps the index of its shape in the scene.

Example:
    >>> import numpy as np
    >>> from src.lumen.geometry.shapes import Sphere
    >>> shapes = [Sphere((0.0, 0.0, -1.0), 0.5, 0), Sphere((0.0, -100.5, -1.0), 100.0, 1)]
    >>> bvh = build_bvh(shapes, 0.0, 1.0, np.random.default_rng(7))
    >>> len(bvh.nodes)
    3
    >>> bvh.validate()
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.lumen.geometry.aabb import AABB
from src.lumen.geometry.shapes import Shape

logger = logging.getLogger(__name__)

# Maximum number of nodes; a binary tree over n leaves has 2n - 1 nodes
MAX_BVH_NODES = 8192

# Upper bound on the traversal stack, far above the depth of a count-split tree
BVH_STACK_SIZE = 64

# Node storage: Structure of Arrays layout for GPU efficiency
bvh_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_left = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_right = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
# Shape index for leaves, -1 for internal nodes
bvh_shape = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
# Root node index, -1 when the scene is empty
bvh_root = ti.field(dtype=ti.i32, shape=())


@dataclass(frozen=True)
class LeafNode:
    """A leaf referencing one shape by its scene index."""

    shape_index: int
    bounds: AABB


@dataclass(frozen=True)
class InternalNode:
    """An internal node with exactly two children, given as arena indices."""

    bounds: AABB
    left: int
    right: int


BVHNode = LeafNode | InternalNode


@dataclass
class BVH:
    """A built hierarchy: the node arena and the number of shapes it covers.

    Attributes:
        nodes: The node arena, children before parents, root last.
        shape_count: Number of shapes the hierarchy was built over.
    """

    nodes: list[BVHNode]
    shape_count: int

    @property
    def root(self) -> int:
        """Index of the root node, or -1 for an empty hierarchy."""
        return len(self.nodes) - 1

    @property
    def bounds(self) -> AABB | None:
        """Bounds of the whole scene, or None when empty."""
        if not self.nodes:
            return None
        return self.nodes[-1].bounds

    def leaves(self) -> list[LeafNode]:
        return [node for node in self.nodes if isinstance(node, LeafNode)]

    def depth(self) -> int:
        """Number of nodes on the longest root-to-leaf path (0 when empty)."""
        if not self.nodes:
            return 0
        depths = [0] * len(self.nodes)
        # Children precede their parents in the arena
        for index, node in enumerate(self.nodes):
            if isinstance(node, LeafNode):
                depths[index] = 1
            else:
                depths[index] = 1 + max(depths[node.left], depths[node.right])
        return depths[-1]

    def level_order(self) -> list[BVHNode]:
        """Return the nodes breadth-first from the root, left child first."""
        if not self.nodes:
            return []
        order = []
        queue = deque([self.root])
        while queue:
            node = self.nodes[queue.popleft()]
            order.append(node)
            if isinstance(node, InternalNode):
                queue.append(node.left)
                queue.append(node.right)
        return order

    def validate(self, tolerance: float = 1e-9) -> None:
        """Check the structural invariants of the hierarchy.

        - exactly one leaf per shape, covering every shape index once
        - every internal node has two distinct children built before it
        - every node except the root has exactly one parent
        - internal bounds contain both child bounds

        Raises:
            ValueError: If any invariant is violated.
        """
        leaves = self.leaves()
        if len(leaves) != self.shape_count:
            raise ValueError(f"Expected {self.shape_count} leaves, found {len(leaves)}")
        covered = sorted(leaf.shape_index for leaf in leaves)
        if covered != list(range(self.shape_count)):
            raise ValueError("Leaves do not cover every shape exactly once")

        if not self.nodes:
            return

        parents = [0] * len(self.nodes)
        for index, node in enumerate(self.nodes):
            if isinstance(node, LeafNode):
                continue
            for child in (node.left, node.right):
                if not 0 <= child < index:
                    raise ValueError(f"Node {index} has invalid child {child}")
                parents[child] += 1
                if not node.bounds.contains(self.nodes[child].bounds, tolerance):
                    raise ValueError(f"Node {index} does not contain child {child}")
            if node.left == node.right:
                raise ValueError(f"Node {index} references child {node.left} twice")

        for index, count in enumerate(parents[:-1]):
            if count != 1:
                raise ValueError(f"Node {index} has {count} parents")
        if parents[-1] != 0:
            raise ValueError("Root node is referenced as a child")


def _shape_bounds(shapes: Sequence[Shape], time_start: float, time_end: float) -> list[AABB]:
    boxes = []
    for index, shape in enumerate(shapes):
        box = shape.bounding_box(time_start, time_end)
        if box is None:
            raise ValueError(
                f"Shape {index} ({type(shape).__name__}) has no bounding box "
                "and cannot be placed in a BVH"
            )
        boxes.append(box)
    return boxes


def _build_range(
    order: list[int],
    start: int,
    end: int,
    boxes: list[AABB],
    rng: np.random.Generator,
    nodes: list[BVHNode],
) -> int:
    """Build the subtree over order[start:end] and return its arena index."""
    axis = int(rng.integers(3))
    order[start:end] = sorted(order[start:end], key=lambda i: boxes[i].minimum[axis])
    count = end - start

    if count == 1:
        shape_index = order[start]
        nodes.append(LeafNode(shape_index, boxes[shape_index]))
        return len(nodes) - 1

    if count == 2:
        first, second = order[start], order[start + 1]
        nodes.append(LeafNode(first, boxes[first]))
        left = len(nodes) - 1
        nodes.append(LeafNode(second, boxes[second]))
        right = len(nodes) - 1
    else:
        mid = start + count // 2
        left = _build_range(order, start, mid, boxes, rng, nodes)
        right = _build_range(order, mid, end, boxes, rng, nodes)

    bounds = AABB.union(nodes[left].bounds, nodes[right].bounds)
    nodes.append(InternalNode(bounds, left, right))
    return len(nodes) - 1


def build_bvh(
    shapes: Sequence[Shape],
    time_start: float,
    time_end: float,
    rng: np.random.Generator | None = None,
) -> BVH:
    """Build a hierarchy over shapes bounded over [time_start, time_end].

    Each step picks a random axis, sorts its range of shapes by bounding box
    minimum on that axis and splits the range in half by count.

    Args:
        shapes: The scene's shapes; their indices become the leaf indices.
        time_start: Start of the shutter interval.
        time_end: End of the shutter interval.
        rng: Source of the split axes. Defaults to a fresh unseeded generator.

    Returns:
        The built BVH. An empty shape list gives an empty hierarchy.

    Raises:
        ValueError: If a shape cannot report a bounding box.
    """
    if rng is None:
        rng = np.random.default_rng()

    boxes = _shape_bounds(shapes, time_start, time_end)
    nodes: list[BVHNode] = []
    if boxes:
        order = list(range(len(boxes)))
        _build_range(order, 0, len(order), boxes, rng, nodes)

    bvh = BVH(nodes=nodes, shape_count=len(boxes))
    logger.debug("Built BVH: %d shapes, %d nodes, depth %d", len(boxes), len(nodes), bvh.depth())
    return bvh


def upload_bvh(bvh: BVH) -> None:
    """Copy the node arena into the Taichi node fields.

    Raises:
        RuntimeError: If the arena exceeds MAX_BVH_NODES.
    """
    count = len(bvh.nodes)
    if count > MAX_BVH_NODES:
        raise RuntimeError(f"Maximum number of BVH nodes ({MAX_BVH_NODES}) exceeded")

    mins = np.zeros((MAX_BVH_NODES, 3), dtype=np.float32)
    maxs = np.zeros((MAX_BVH_NODES, 3), dtype=np.float32)
    lefts = np.full(MAX_BVH_NODES, -1, dtype=np.int32)
    rights = np.full(MAX_BVH_NODES, -1, dtype=np.int32)
    shape_ids = np.full(MAX_BVH_NODES, -1, dtype=np.int32)

    for index, node in enumerate(bvh.nodes):
        mins[index] = node.bounds.minimum
        maxs[index] = node.bounds.maximum
        if isinstance(node, LeafNode):
            shape_ids[index] = node.shape_index
        else:
            lefts[index] = node.left
            rights[index] = node.right

    # Round outward so float32 boxes still enclose their float32 shapes
    mins = np.nextafter(mins, np.float32(-np.inf))
    maxs = np.nextafter(maxs, np.float32(np.inf))

    bvh_min.from_numpy(mins)
    bvh_max.from_numpy(maxs)
    bvh_left.from_numpy(lefts)
    bvh_right.from_numpy(rights)
    bvh_shape.from_numpy(shape_ids)
    bvh_root[None] = bvh.root


def clear_bvh() -> None:
    """Mark the uploaded hierarchy as empty."""
    bvh_root[None] = -1
