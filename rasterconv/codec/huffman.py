"""Huffman tree: construction, code table, serialization and reconstruction.

Nodes live in an arena (a list addressed by index) owned by the tree.
Each node stores child indices and an optional parent index; the parent
index exists only for the upward walk used while a tree is rebuilt from a
bitstream.

Serialized form (pre-order):
  - internal node: ``0``, then the left subtree, then the right subtree
  - leaf: ``1`` followed by the symbol as 8 bits
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from rasterconv.codec.bitstream import BitReader
from rasterconv.errors import TreeIncompleteError, TruncatedError


@dataclass
class HuffmanNode:
    """One node in the tree arena.

    Attributes:
        symbol: Byte value for leaves, None for internal nodes
        weight: Symbol frequency (leaves only, during construction)
        left: Index of the left child
        right: Index of the right child
        parent: Index of the parent, None for the root
    """

    symbol: int | None = None
    weight: int = 0
    left: int | None = None
    right: int | None = None
    parent: int | None = None

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None


def histogram(data: Any) -> np.ndarray:
    """Return the 256-bucket byte histogram of ``data``.

    Args:
        data: bytes-like object or uint8 array (any shape)
    """
    if isinstance(data, np.ndarray):
        flat = data.astype(np.uint8, copy=False).ravel()
    else:
        flat = np.frombuffer(bytes(data), dtype=np.uint8)
    return np.bincount(flat, minlength=256).astype(np.int64)


class HuffmanTree:
    """Huffman tree stored as a node arena.

    Build one with :meth:`from_histogram` (encode side) or :meth:`read`
    (decode side). Only one tree exists per encode or decode pass.

    Example:
        >>> tree = HuffmanTree.from_histogram(histogram(b"aab"))
        >>> tree.code_table()
        {98: '0', 97: '1'}
        >>> tree.serialize()
        '0101100010101100001'
    """

    def __init__(self) -> None:
        self.nodes: list[HuffmanNode] = []
        self.root: int | None = None

    # ------------------------------------------------------------------
    # Arena helpers
    # ------------------------------------------------------------------

    def _add(self, node: HuffmanNode) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def _leaf(self, symbol: int, weight: int = 0) -> int:
        return self._add(HuffmanNode(symbol=symbol & 0xFF, weight=weight))

    def _join(self, left: int, right: int) -> int:
        idx = self._add(HuffmanNode(left=left, right=right))
        self.nodes[left].parent = idx
        self.nodes[right].parent = idx
        return idx

    def _require_root(self) -> int:
        if self.root is None:
            raise ValueError("Huffman tree is empty")
        return self.root

    def weight(self, idx: int) -> int:
        """Weight of the subtree at ``idx`` (sum of its leaf weights)."""
        node = self.nodes[idx]
        if node.is_leaf:
            return node.weight
        total = 0
        if node.left is not None:
            total += self.weight(node.left)
        if node.right is not None:
            total += self.weight(node.right)
        return total

    def depth(self, idx: int | None = None) -> int:
        """Depth of the subtree at ``idx`` (whole tree by default); leaves are 1."""
        if idx is None:
            idx = self._require_root()
        node = self.nodes[idx]
        if node.left is None and node.right is None:
            return 1
        left = self.depth(node.left) if node.left is not None else 0
        right = self.depth(node.right) if node.right is not None else 0
        return max(left, right) + 1

    def leaf_symbols(self) -> list[int]:
        """Symbols of all leaves, in pre-order."""
        return [sym for sym in self.code_table()]

    # ------------------------------------------------------------------
    # Encode side
    # ------------------------------------------------------------------

    @classmethod
    def from_histogram(cls, hist: Any) -> HuffmanTree:
        """Build a tree from a 256-bucket frequency histogram.

        The node list is repeatedly sorted by (weight, depth) and its two
        smallest entries merged, smallest on the left. An image with a
        single distinct byte gets a synthetic sibling leaf holding
        ``symbol + 1`` (255 wraps to 0) so every real symbol has a code.

        Raises:
            ValueError: If the histogram is empty
        """
        counts = np.asarray(hist).ravel()
        if counts.shape[0] != 256:
            raise ValueError(f"Expected 256 histogram buckets, got {counts.shape[0]}")

        tree = cls()
        pool = [tree._leaf(sym, int(w)) for sym, w in enumerate(counts) if w > 0]
        if not pool:
            raise ValueError("Cannot build a Huffman tree from an empty histogram")

        while len(pool) > 1:
            pool.sort(key=lambda i: (tree.weight(i), tree.depth(i)))
            merged = tree._join(pool[0], pool[1])
            pool = pool[2:] + [merged]

        root = pool[0]
        lone = tree.nodes[root]
        if lone.is_leaf:
            assert lone.symbol is not None
            root = tree._join(root, tree._leaf(lone.symbol + 1, 1))
        tree.root = root
        return tree

    def code_table(self) -> dict[int, str]:
        """Map each leaf symbol to its path from the root (left 0, right 1)."""
        table: dict[int, str] = {}
        stack = [(self._require_root(), "")]
        while stack:
            idx, code = stack.pop()
            node = self.nodes[idx]
            if node.is_leaf:
                assert node.symbol is not None
                table[node.symbol] = code
                continue
            # Right pushed first so the left subtree is visited first.
            if node.right is not None:
                stack.append((node.right, code + "1"))
            if node.left is not None:
                stack.append((node.left, code + "0"))
        return table

    def serialize(self) -> str:
        """Return the pre-order bit string describing the tree."""
        parts: list[str] = []
        stack = [self._require_root()]
        while stack:
            node = self.nodes[stack.pop()]
            if node.is_leaf:
                parts.append(f"1{node.symbol:08b}")
                continue
            parts.append("0")
            if node.left is None or node.right is None:
                raise ValueError("Cannot serialize an incomplete Huffman tree")
            stack.append(node.right)
            stack.append(node.left)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Decode side
    # ------------------------------------------------------------------

    def _walk_for_slot(self, start: int) -> int | None:
        """Walk up from ``start`` to the first node with an open child slot."""
        current: int | None = start
        while current is not None:
            node = self.nodes[current]
            if node.parent is None and node.right is not None:
                return None
            if node.is_leaf:
                current = node.parent
            elif node.left is None or node.right is None:
                return current
            else:
                current = node.parent
        return None

    def is_appendable(self, last: int) -> bool:
        """True while the tree still has an open slot reachable from ``last``."""
        return self._walk_for_slot(last) is not None

    def append(self, last: int, node: HuffmanNode) -> int:
        """Attach ``node`` at the next open slot above ``last``.

        Args:
            last: Index of the most recently appended node
            node: Node to attach

        Returns:
            Index of the attached node

        Raises:
            ValueError: If the tree is already complete
        """
        slot = self._walk_for_slot(last)
        if slot is None:
            raise ValueError("Huffman tree is complete; cannot append")
        idx = self._add(node)
        node.parent = slot
        parent = self.nodes[slot]
        if parent.left is None:
            parent.left = idx
        else:
            parent.right = idx
        return idx

    @classmethod
    def read(cls, reader: BitReader) -> HuffmanTree:
        """Rebuild a tree from its pre-order serialization.

        The root is materialized up front, so the first bit is discarded.

        Raises:
            TreeIncompleteError: If the bitstream ends before the tree is complete
        """
        tree = cls()
        tree.root = tree._add(HuffmanNode())
        last = tree.root
        try:
            if reader.take(1) is None:
                raise TreeIncompleteError("Data segment is empty; no Huffman tree found")

            while tree.is_appendable(last):
                bit = reader.take(1)
                if bit is None:
                    raise TreeIncompleteError(
                        "Data segment ended before the Huffman tree was complete"
                    )
                if bit == 0:
                    last = tree.append(last, HuffmanNode())
                    continue
                symbol = reader.take(8)
                if symbol is None:
                    raise TreeIncompleteError(
                        "Data segment ended inside a Huffman leaf symbol"
                    )
                last = tree.append(last, HuffmanNode(symbol=symbol))
        except TreeIncompleteError:
            raise
        except TruncatedError as e:
            raise TreeIncompleteError(str(e)) from e
        return tree

    def decode_symbol(self, reader: BitReader) -> int:
        """Read one symbol by walking from the root.

        Raises:
            TruncatedError: If the bitstream ends mid-code
        """
        node = self.nodes[self._require_root()]
        while not node.is_leaf:
            bit = reader.take(1)
            if bit is None:
                raise TruncatedError("Less image data to read than expected")
            child = node.right if bit else node.left
            if child is None:
                raise TruncatedError("Huffman code leads to an empty slot")
            node = self.nodes[child]
        assert node.symbol is not None
        return node.symbol

    def __repr__(self) -> str:
        leaves = sum(1 for n in self.nodes if n.is_leaf)
        return f"HuffmanTree(nodes={len(self.nodes)}, leaves={leaves})"
