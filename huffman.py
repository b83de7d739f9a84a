import heapq
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

SYMBOLS = 256 # one count per possible byte value
MAX_COUNT = (1 << 64) - 1 # counts are stored as unsigned 64-bit integers


class HuffmanError(Exception): # base for codec failures
    pass

class MalformedHeaderError(HuffmanError, ValueError): # input shorter than the fixed header
    pass

class TruncatedStreamError(HuffmanError, EOFError): # bitstream ran out before all symbols decoded
    pass


class FrequencyTable: # per-byte occurrence counts, immutable once built
    __slots__ = ("counts",)

    def __init__(self, counts: Sequence[int]):
        if len(counts) != SYMBOLS:
            raise ValueError(f"expected {SYMBOLS} counts, got {len(counts)}")
        for value, count in enumerate(counts):
            if count < 0 or count > MAX_COUNT:
                raise ValueError(f"count for byte {value} out of range: {count}")
        self.counts: Tuple[int, ...] = tuple(counts)

    @classmethod
    def from_counts(cls, counts: Sequence[int]) -> "FrequencyTable":
        return cls(counts)

    @classmethod
    def from_chunks(cls, chunks: Iterable[bytes]) -> "FrequencyTable":
        acc: Counter = Counter()
        for chunk in chunks:
            acc.update(chunk) # iterating bytes yields ints 0..255
        return cls([acc[b] for b in range(SYMBOLS)])

    @property
    def total(self) -> int:
        return sum(self.counts)

    def symbols(self) -> List[int]: # byte values that occur, ascending
        return [b for b, count in enumerate(self.counts) if count]

    def __getitem__(self, byte: int) -> int:
        return self.counts[byte]

    def __eq__(self, other) -> bool:
        return isinstance(other, FrequencyTable) and self.counts == other.counts

    def __repr__(self) -> str:
        return f"FrequencyTable(symbols={len(self.symbols())}, total={self.total})"


def count(data: bytes) -> FrequencyTable:
    return FrequencyTable.from_chunks([data])


class HuffmanTree:
    """
    Huffman tree stored as an arena of parallel lists.

    Node ``i`` has weight ``weight[i]``. Leaves carry their byte value in
    ``symbol[i]`` and have ``left[i] == right[i] == -1``; internal nodes
    carry ``symbol[i] is None`` and the indices of exactly two children.
    ``root`` is None when the table had no occurring symbols.
    """

    def __init__(self):
        self.weight: List[int] = []
        self.symbol: List[Optional[int]] = []
        self.left: List[int] = []
        self.right: List[int] = []
        self.root: Optional[int] = None

    def add_leaf(self, symbol: int, weight: int) -> int:
        self.weight.append(weight)
        self.symbol.append(symbol)
        self.left.append(-1)
        self.right.append(-1)
        return len(self.weight) - 1

    def add_internal(self, left: int, right: int) -> int:
        self.weight.append(self.weight[left] + self.weight[right])
        self.symbol.append(None)
        self.left.append(left)
        self.right.append(right)
        return len(self.weight) - 1

    def is_leaf(self, node: int) -> bool:
        return self.symbol[node] is not None

    @property
    def is_empty(self) -> bool:
        return self.root is None

    @property
    def is_single(self) -> bool: # one distinct symbol: the root itself is a leaf
        return self.root is not None and self.is_leaf(self.root)

    def leaves(self) -> List[int]:
        return [i for i, s in enumerate(self.symbol) if s is not None]

    def __len__(self) -> int:
        return len(self.weight)


def build(table: FrequencyTable) -> HuffmanTree:
    """
    Build the Huffman tree for ``table``.

    Candidates are ordered by (weight, sequence). Leaves get sequence numbers
    in ascending byte order, each merged node takes the next number. The
    first node popped becomes the left child.
    """
    tree = HuffmanTree()
    priority_queue: List[Tuple[int, int, int]] = [] # (weight, sequence, node index)
    for symbol in table.symbols():
        node = tree.add_leaf(symbol, table[symbol])
        priority_queue.append((table[symbol], node, node))
    heapq.heapify(priority_queue)

    if not priority_queue:
        return tree
    if len(priority_queue) == 1:
        # single symbol: the leaf is the root, assign() gives it the code "0"
        tree.root = priority_queue[0][2]
        return tree

    sequence = len(priority_queue)
    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        merged = tree.add_internal(left, right)
        heapq.heappush(priority_queue, (tree.weight[merged], sequence, merged))
        sequence += 1

    tree.root = priority_queue[0][2] # root of the tree
    return tree


CodeTable = Dict[int, Tuple[int, int]] # byte -> (pattern, bit length)


def assign(tree: HuffmanTree) -> CodeTable:
    codes: CodeTable = {}
    if tree.root is None:
        return codes
    if tree.is_single:
        codes[tree.symbol[tree.root]] = (0, 1)
        return codes

    def assign_helper(node: int, pattern: int, length: int): # 0 = left, 1 = right
        if tree.is_leaf(node):
            codes[tree.symbol[node]] = (pattern, length)
            return
        assign_helper(tree.left[node], pattern << 1, length + 1)
        assign_helper(tree.right[node], (pattern << 1) | 1, length + 1)

    assign_helper(tree.root, 0, 0)
    return codes
