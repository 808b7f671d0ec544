"""Adaptive Huffman coding, FGK variant.

Encoder and decoder both start from a tree holding a single not-yet-seen
leaf and grow identical trees as symbols go by, so nothing but the coded
bits is ever written.  A symbol seen for the first time is sent as the
code of the not-yet-seen leaf followed by its raw 8 bits; after that it is
sent as its current root-to-leaf path.  The stream is terminated by an
end-of-text symbol that the caller appends to the payload.

Node ranks follow the usual FGK numbering: the root holds ROOT_RANK,
splitting a not-yet-seen leaf of rank r gives its children ranks r - 2
(new not-yet-seen leaf, left) and r - 1 (symbol leaf, right).  Listing the
nodes by increasing rank always gives non-decreasing weights.
"""
import sys
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence, Tuple

from bitio import CompressorBitio

COMPRESSION_NAME = "adaptive Huffman coding, FGK algorithm"
USAGE = "infile [-d]\n\nSpecifying -d will dump the modeling data\n"

END_TEXT = 3
SYMBOL_BITS = 8
SYMBOL_COUNT = 1 << SYMBOL_BITS
ROOT_RANK = 0x7FFFFFFF
ROOT_NODE = 0
NO_NODE = -1


class TreeError(Exception):
    """The tree model was asked to do something that would corrupt it."""


class EmptyInputError(ValueError):
    pass


class SentinelCollisionError(ValueError):
    pass


class Node:
    __slots__ = ('symbol', 'weight', 'rank', 'parent', 'left', 'right', 'not_yet_seen')

    def __init__(self, rank: int, parent: int = NO_NODE, symbol: int = 0,
                 weight: int = 0, not_yet_seen: bool = False):
        self.symbol = symbol
        self.weight = weight
        self.rank = rank
        self.parent = parent
        self.left = NO_NODE
        self.right = NO_NODE
        self.not_yet_seen = not_yet_seen

    @property
    def is_leaf(self) -> bool:
        return self.left == NO_NODE


class Tree:
    """Node pool for one encode or decode session.

    Nodes live in ``nodes`` and refer to each other by index; ``leaf`` maps
    each byte value to the index of its leaf, or NO_NODE while unseen.
    """

    def __init__(self):
        self.nodes: List[Node] = [Node(ROOT_RANK, not_yet_seen=True)]
        self.leaf: List[int] = [NO_NODE] * SYMBOL_COUNT
        self.not_yet_seen: int = ROOT_NODE

    def __len__(self) -> int:
        return len(self.nodes)

    def is_ancestor(self, ancestor: int, node: int) -> bool:
        node = self.nodes[node].parent
        while node != NO_NODE:
            if node == ancestor:
                return True
            node = self.nodes[node].parent
        return False

    def split(self, symbol: int) -> Tuple[int, int, int]:
        """Turn the not-yet-seen leaf into an internal node.

        Returns (internal, new not-yet-seen leaf, symbol leaf).  The symbol
        leaf starts at weight 1; the internal node keeps its old weight
        until the caller propagates the increment.
        """
        internal = self.not_yet_seen
        old = self.nodes[internal]
        left = len(self.nodes)
        right = left + 1
        self.nodes.append(Node(old.rank - 2, internal, not_yet_seen=True))
        self.nodes.append(Node(old.rank - 1, internal, symbol=symbol, weight=1))
        old.not_yet_seen = False
        old.left = left
        old.right = right
        self.not_yet_seen = left
        return internal, left, right

    def _replace_child(self, parent: int, old_child: int, new_child: int):
        node = self.nodes[parent]
        if node.left == old_child:
            node.left = new_child
        else:
            node.right = new_child

    def exchange(self, a: int, b: int):
        """Swap the tree positions of nodes a and b, ranks included.

        Subtrees travel with their roots.  When one node is the other's
        parent the child is swapped with its sibling instead.
        """
        if a == b:
            return
        na = self.nodes[a]
        nb = self.nodes[b]
        if na.parent == b or nb.parent == a:
            child = a if na.parent == b else b
            parent = self.nodes[self.nodes[child].parent]
            sibling = parent.right if parent.left == child else parent.left
            self.exchange(child, sibling)
            return
        if self.is_ancestor(a, b) or self.is_ancestor(b, a):
            raise TreeError(f"cannot exchange node {a} with its relative {b}")

        if na.parent == nb.parent:
            parent = self.nodes[na.parent]
            parent.left, parent.right = parent.right, parent.left
        else:
            self._replace_child(na.parent, a, b)
            self._replace_child(nb.parent, b, a)
            na.parent, nb.parent = nb.parent, na.parent
        na.rank, nb.rank = nb.rank, na.rank

    def preorder(self) -> Iterator[int]:
        stack = [ROOT_NODE]
        while stack:
            index = stack.pop()
            yield index
            node = self.nodes[index]
            if not node.is_leaf:
                stack.append(node.right)
                stack.append(node.left)

    def snapshot(self) -> Tuple[Tuple[int, int, Optional[int], bool], ...]:
        """Shape, ranks, weights and symbols in pre-order, for comparing trees."""
        result = []
        for index in self.preorder():
            node = self.nodes[index]
            symbol = node.symbol if node.is_leaf and not node.not_yet_seen else None
            result.append((node.rank, node.weight, symbol, node.not_yet_seen))
        return tuple(result)

    def check_invariants(self):
        seen = set()
        for index in self.preorder():
            if index in seen:
                raise TreeError(f"node {index} reached twice")
            seen.add(index)
        if len(seen) != len(self.nodes):
            raise TreeError(f"{len(self.nodes) - len(seen)} nodes unreachable from the root")
        if self.nodes[ROOT_NODE].parent != NO_NODE:
            raise TreeError("root has a parent")

        not_yet_seen = [i for i, node in enumerate(self.nodes) if node.not_yet_seen]
        if not_yet_seen != [self.not_yet_seen] or not self.nodes[self.not_yet_seen].is_leaf:
            raise TreeError(f"expected one not-yet-seen leaf, found {not_yet_seen}")

        for index, node in enumerate(self.nodes):
            if node.is_leaf:
                if node.right != NO_NODE:
                    raise TreeError(f"node {index} has only a right child")
                continue
            for child in (node.left, node.right):
                if child == NO_NODE:
                    raise TreeError(f"internal node {index} is missing a child")
                if self.nodes[child].parent != index:
                    raise TreeError(f"node {child} does not point back to parent {index}")
            if node.weight != self.nodes[node.left].weight + self.nodes[node.right].weight:
                raise TreeError(f"weight of node {index} is not the sum of its children")

        for symbol, index in enumerate(self.leaf):
            if index == NO_NODE:
                continue
            node = self.nodes[index]
            if not node.is_leaf or node.not_yet_seen or node.symbol != symbol:
                raise TreeError(f"symbol table entry {symbol} points at node {index}")

        by_rank = sorted(self.nodes, key=lambda n: n.rank)
        for lower, higher in zip(by_rank, by_rank[1:]):
            if lower.rank == higher.rank:
                raise TreeError(f"rank {lower.rank} used twice")
            if lower.weight > higher.weight:
                raise TreeError(f"sibling property broken between ranks {lower.rank} and {higher.rank}")


def check_symbol(c: int) -> int:
    if not 0 <= c < SYMBOL_COUNT:
        raise ValueError(f"symbol {c} does not fit in {SYMBOL_BITS} bits")
    return c


def generate_code(tree: Tree, node: int) -> List[int]:
    """Bits from the root down to node; right branches are 1."""
    code = []
    parent = tree.nodes[node].parent
    while parent != NO_NODE:
        code.append(1 if tree.nodes[parent].right == node else 0)
        node = parent
        parent = tree.nodes[node].parent
    code.reverse()
    return code


def _new_spot(tree: Tree, node: int, current: int, best: int) -> int:
    weight = tree.nodes[node].weight
    candidate = tree.nodes[current]
    if candidate.weight > weight and not candidate.is_leaf:
        best = _new_spot(tree, node, candidate.left, best)
        best = _new_spot(tree, node, candidate.right, best)
    elif candidate.weight == weight and candidate.rank > tree.nodes[best].rank:
        best = current
    return best


def find_new_spot(tree: Tree, node: int) -> Optional[int]:
    """Highest ranked node with the same weight as node, if it isn't node.

    The walk is pre-order, left before right, and only enters internal
    nodes heavier than node; encoder and decoder must agree on it.
    """
    best = _new_spot(tree, node, ROOT_NODE, node)
    if best == node:
        return None
    return best


def update_model(tree: Tree, node: int):
    """Add one to the weight of node and of every ancestor, keeping the
    sibling property by moving each of them to the top of its weight block
    first."""
    while tree.nodes[node].parent != NO_NODE:
        spot = find_new_spot(tree, node)
        if spot is not None and spot != tree.nodes[node].parent:
            tree.exchange(node, spot)
        tree.nodes[node].weight += 1
        node = tree.nodes[node].parent
    tree.nodes[node].weight += 1


def add_new_node(tree: Tree, c: int) -> int:
    """Give symbol c a leaf by splitting the not-yet-seen leaf.

    Returns the split node, which is where update_model has to start.
    """
    if tree.leaf[c] != NO_NODE:
        raise TreeError(f"symbol {c} introduced twice")
    internal, _, leaf = tree.split(c)
    tree.leaf[c] = leaf
    return internal


class Encoder:
    def __init__(self, end_of_text: int = END_TEXT):
        self.end_of_text = check_symbol(end_of_text)
        self.tree = Tree()

    def encode_symbol(self, c: int) -> List[int]:
        tree = self.tree
        node = tree.leaf[check_symbol(c)]
        if node != NO_NODE:
            code = generate_code(tree, node)
        else:
            code = generate_code(tree, tree.not_yet_seen)
            code.extend((c >> i) & 1 for i in range(SYMBOL_BITS - 1, -1, -1))
            node = add_new_node(tree, c)
        update_model(tree, node)
        return code

    def bits(self, symbols: Iterable[int]) -> Iterator[int]:
        for c in symbols:
            yield from self.encode_symbol(c)

    def encode(self, symbols: Sequence[int], pacifier: bool = False) -> bytes:
        if not symbols:
            raise EmptyInputError("nothing to encode, not even an end-of-text symbol")
        packer = CompressorBitio.BitPacker(pacifier)
        return packer.pack(self.bits(symbols)).close()


class Decoder:
    def __init__(self, end_of_text: int = END_TEXT):
        self.end_of_text = check_symbol(end_of_text)
        self.tree = Tree()

    def decode_symbol(self, input_bits: 'CompressorBitio.BitUnpacker') -> int:
        tree = self.tree
        current = ROOT_NODE
        while not tree.nodes[current].is_leaf:
            if input_bits.input_bit():
                current = tree.nodes[current].right
            else:
                current = tree.nodes[current].left

        if tree.nodes[current].not_yet_seen:
            c = input_bits.input_bits(SYMBOL_BITS)
            current = add_new_node(tree, c)
        else:
            c = tree.nodes[current].symbol

        if c != self.end_of_text:
            update_model(tree, current)
        return c

    def _symbols(self, input_bits: 'CompressorBitio.BitUnpacker') -> Iterator[int]:
        while True:
            c = self.decode_symbol(input_bits)
            if c == self.end_of_text:
                return
            yield c

    def symbols(self, data: bytes, length: Optional[int] = None,
                pacifier: bool = False) -> Iterator[int]:
        if length is None:
            length = len(data)
        if length == 0:
            raise EmptyInputError("nothing to decode")
        return self._symbols(CompressorBitio.BitUnpacker(data, length, pacifier=pacifier))

    def decode(self, data: bytes, length: Optional[int] = None, pacifier: bool = False) -> bytes:
        return bytes(self.symbols(data, length, pacifier))


def encode(symbols: Sequence[int], end_of_text: int = END_TEXT) -> bytes:
    """Code symbols, which must already end with the end-of-text symbol."""
    return Encoder(end_of_text).encode(symbols)


def decode(data: bytes, length: Optional[int] = None, end_of_text: int = END_TEXT) -> bytes:
    """Decode the first length bytes of data up to the end-of-text symbol."""
    return Decoder(end_of_text).decode(data, length)


def append_end_of_text(data: bytes, end_of_text: int = END_TEXT) -> bytes:
    # A payload byte equal to the sentinel would end decoding early.
    if end_of_text in data:
        raise SentinelCollisionError(
            f"input contains the end-of-text value {end_of_text} at offset {data.index(end_of_text)}")
    return bytes(data) + bytes([end_of_text])


def compress(data: bytes, end_of_text: int = END_TEXT) -> bytes:
    return encode(append_end_of_text(data, end_of_text), end_of_text)


def compress_file(input_file: BinaryIO, output_file: BinaryIO, args: list):
    encoder = Encoder()
    output_file.write(encoder.encode(append_end_of_text(input_file.read()), pacifier=True))

    for arg in args:
        if arg == "-d":
            print_tree(encoder.tree)
        else:
            print(f"Unused argument: {arg}")


def expand_file(input_file: BinaryIO, output_file: BinaryIO, args: list):
    data = input_file.read()
    decoder = Decoder()
    output_file.write(decoder.decode(data, len(data), pacifier=True))

    for arg in args:
        if arg == "-d":
            print_tree(decoder.tree)
        else:
            print(f"Unused argument: {arg}")


def print_tree(tree: Tree):
    print("\nAdaptive Huffman Tree:")
    print_codes(tree)


def print_codes(tree: Tree):
    print()
    for c in range(SYMBOL_COUNT):
        if tree.leaf[c] != NO_NODE:
            if 32 <= c <= 126:  # Printable ASCII
                print(f"'{chr(c)}': ", end="")
            else:
                print(f"<{c:3}>: ", end="")

            print(f"{tree.nodes[tree.leaf[c]].weight:5} ", end="")
            print_code(tree, tree.leaf[c])
            print()


def print_code(tree: Tree, node: int):
    sys.stdout.write("".join('1' if bit else '0' for bit in generate_code(tree, node)))
