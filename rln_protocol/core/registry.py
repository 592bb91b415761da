"""Membership registry boundary.

The RLN core never hashes tree nodes itself. It consumes ``MerkleProof``
values produced by a ``MembershipRegistry`` and enforces one convention on
them: the registry's zero value marks an empty slot and is never a member.

``InMemoryRegistry`` is a reference accumulator for local tooling and
tests. Node hashing goes through the injected ``FieldHasher``; production
deployments use whatever accumulator their circuit was compiled against.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

import structlog

from rln_protocol.core.errors import ZeroLeaf
from rln_protocol.utils.field import to_field
from rln_protocol.utils.hashing import FieldHasher

log = structlog.get_logger()

MIN_DEPTH = 16
MAX_DEPTH = 32


@dataclass(frozen=True)
class MerkleProof:
    """Inclusion proof for one leaf: sibling hashes and left/right bits, leaf first."""

    root: int
    leaf: int
    siblings: tuple[int, ...]
    path_indices: tuple[int, ...]

    @property
    def depth(self) -> int:
        return len(self.siblings)


class MembershipRegistry(Protocol):
    @property
    def root(self) -> int: ...

    @property
    def depth(self) -> int: ...

    @property
    def zero_value(self) -> int: ...

    @property
    def members(self) -> list[int]: ...

    def insert(self, leaf: int) -> int: ...

    def remove(self, index: int) -> None: ...

    def index_of(self, leaf: int) -> int: ...

    def prove_membership(self, index: int) -> MerkleProof: ...


class _MerkleTree:
    """Sparse binary Merkle tree with precomputed empty-subtree hashes."""

    def __init__(self, depth: int, zero_value: int, hasher: FieldHasher) -> None:
        if depth < 1:
            raise ValueError(f"tree depth must be >= 1, got {depth}")
        self.depth = depth
        self.zero_value = zero_value
        self._hasher = hasher
        self._zeroes = [zero_value]
        for _ in range(depth):
            z = self._zeroes[-1]
            self._zeroes.append(hasher([z, z]))
        self._nodes: list[dict[int, int]] = [{} for _ in range(depth + 1)]
        self.leaves: list[int] = []

    @property
    def root(self) -> int:
        return self._nodes[self.depth].get(0, self._zeroes[self.depth])

    def _node(self, level: int, index: int) -> int:
        return self._nodes[level].get(index, self._zeroes[level])

    def _update(self, index: int, leaf: int) -> None:
        self._nodes[0][index] = leaf
        for level in range(self.depth):
            parent = index >> 1
            left = self._node(level, parent << 1)
            right = self._node(level, (parent << 1) | 1)
            self._nodes[level + 1][parent] = self._hasher([left, right])
            index = parent

    def insert(self, leaf: int) -> int:
        index = len(self.leaves)
        if index >= 1 << self.depth:
            raise ValueError(f"tree is full ({1 << self.depth} leaves)")
        self.leaves.append(leaf)
        self._update(index, leaf)
        return index

    def update(self, index: int, leaf: int) -> None:
        if not 0 <= index < len(self.leaves):
            raise IndexError(f"leaf index {index} out of range")
        self.leaves[index] = leaf
        self._update(index, leaf)

    def proof(self, index: int) -> MerkleProof:
        if not 0 <= index < len(self.leaves):
            raise IndexError(f"leaf index {index} out of range")
        leaf = self.leaves[index]
        siblings = []
        path_indices = []
        for level in range(self.depth):
            siblings.append(self._node(level, index ^ 1))
            path_indices.append(index & 1)
            index >>= 1
        return MerkleProof(
            root=self.root,
            leaf=leaf,
            siblings=tuple(siblings),
            path_indices=tuple(path_indices),
        )


class InMemoryRegistry:
    """Append-only membership accumulator; removal zeroes the slot, the tree never shrinks.

    Not thread-safe for writers: callers serialize insert/remove against one
    instance. Concurrent readers are fine while no writer is active.
    """

    def __init__(self, hasher: FieldHasher, depth: int = 20, zero_value: int = 0) -> None:
        if depth < MIN_DEPTH or depth > MAX_DEPTH:
            raise ValueError(f"The tree depth must be between {MIN_DEPTH} and {MAX_DEPTH}")
        self._tree = _MerkleTree(depth, to_field(zero_value), hasher)

    @property
    def root(self) -> int:
        return self._tree.root

    @property
    def depth(self) -> int:
        return self._tree.depth

    @property
    def zero_value(self) -> int:
        return self._tree.zero_value

    @property
    def members(self) -> list[int]:
        return list(self._tree.leaves)

    def insert(self, leaf: int) -> int:
        leaf = to_field(leaf)
        if leaf == self.zero_value:
            raise ZeroLeaf("Can't add the zero value as a member")
        index = self._tree.insert(leaf)
        log.debug("registry_member_added", index=index)
        return index

    def insert_many(self, leaves: Iterable[int]) -> list[int]:
        return [self.insert(leaf) for leaf in leaves]

    def remove(self, index: int) -> None:
        self._tree.update(index, self.zero_value)
        log.info("registry_member_removed", index=index)

    def index_of(self, leaf: int) -> int:
        """Index of a member, or -1 when absent."""
        leaf = to_field(leaf)
        if leaf == self.zero_value:
            return -1
        try:
            return self._tree.leaves.index(leaf)
        except ValueError:
            return -1

    def prove_membership(self, index: int) -> MerkleProof:
        proof = self._tree.proof(index)
        if proof.leaf == self.zero_value:
            raise ZeroLeaf("Can't generate a proof for a zero leaf")
        return proof


def generate_merkle_proof(
    depth: int,
    zero_value: int,
    leaves: Iterable[int],
    leaf: int,
    hasher: FieldHasher,
) -> MerkleProof:
    """Build a throwaway tree from ``leaves`` and prove inclusion of ``leaf``.

    Unlike ``InMemoryRegistry`` this accepts any depth and any leaf list,
    including empty slots, which makes it suitable for replaying a
    snapshot of an on-chain member list.

    Raises:
        ZeroLeaf: If ``leaf`` is the zero value.
        ValueError: If ``leaf`` is not in ``leaves``.
    """
    zero_value = to_field(zero_value)
    leaf = to_field(leaf)
    if leaf == zero_value:
        raise ZeroLeaf("Can't generate a proof for a zero leaf")

    tree = _MerkleTree(depth, zero_value, hasher)
    for member in leaves:
        tree.insert(to_field(member))

    try:
        index = tree.leaves.index(leaf)
    except ValueError:
        raise ValueError("The leaf does not exist in this tree") from None
    return tree.proof(index)
