# engine.py

from dataclasses import dataclass, replace
from itertools import count
from typing import Callable, Dict, Iterable, Iterator, List, Optional


MAX_BLOCKS = 100        # Maximum number of tracked memory blocks
SPLIT_THRESHOLD = 10    # Leftover (KB) a block must exceed before it is split


class ProcessState:
    NEW = "New"
    RUNNING = "Running"
    TERMINATED = "Terminated"


class AllocationFailure:
    """Why the most recent allocation attempt failed."""
    INVALID_REQUEST = "InvalidRequest"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    NO_FIT_FOUND = "NoFitFound"
    BLOCK_TABLE_FULL = "BlockTableFull"
    ALREADY_ALLOCATED = "AlreadyAllocated"


class BlockTableFull(Exception):
    pass


@dataclass
class MemoryBlock:
    start: int
    size: int
    free: bool = True
    owner: Optional[int] = None
    block_id: int = 0
    requested: int = 0

    @property
    def end(self) -> int:
        return self.start + self.size

    def __repr__(self):
        state = "F" if self.free else "A"
        return f"[{state}|{self.start}|{self.size}]"


@dataclass
class Process:
    id: int
    requested_size: int
    state: str = ProcessState.NEW
    block_id: Optional[int] = None
    arrival_time: int = 0
    duration: int = 10

    @property
    def is_running(self) -> bool:
        return self.state == ProcessState.RUNNING


# -----------------------------
# Block List
# -----------------------------
class BlockList:
    """
    Ordered blocks tiling the address space ``[0, total_size)``.

    Blocks are addressed two ways: by position (changes whenever a block is
    inserted or merged away) and by ``block_id``, a handle that stays valid
    for the lifetime of the block. Process records hold handles only.
    """

    def __init__(self, total_size: int, max_blocks: int = MAX_BLOCKS):
        self.total_size = total_size
        self.max_blocks = max_blocks
        self._ids = count(1)
        self._blocks: List[MemoryBlock] = [self._new_block(0, total_size)]

    def _new_block(self, start, size) -> MemoryBlock:
        return MemoryBlock(start, size, free=True, block_id=next(self._ids))

    def __len__(self):
        return len(self._blocks)

    def __iter__(self) -> Iterator[MemoryBlock]:
        return iter(self._blocks)

    def __getitem__(self, index) -> MemoryBlock:
        return self._blocks[index]

    @property
    def is_full(self) -> bool:
        return len(self._blocks) >= self.max_blocks

    def index_of(self, block_id: int) -> Optional[int]:
        for i, block in enumerate(self._blocks):
            if block.block_id == block_id:
                return i
        return None

    def get(self, block_id: int) -> Optional[MemoryBlock]:
        index = self.index_of(block_id)
        return None if index is None else self._blocks[index]

    def split(self, index: int, size: int) -> MemoryBlock:
        """
        Shrink block ``index`` to ``size`` and insert the remainder right
        after it as a new free block. Returns the new block.
        """
        block = self._blocks[index]
        if not 0 < size < block.size:
            raise ValueError(f"cannot split {block!r} at {size}")
        if self.is_full:
            raise BlockTableFull(f"block table full ({self.max_blocks} blocks)")

        remainder = self._new_block(block.start + size, block.size - size)
        block.size = size
        self._blocks.insert(index + 1, remainder)
        return remainder

    def merge_next(self, index: int) -> MemoryBlock:
        """Absorb block ``index + 1`` into block ``index``; return the removed block."""
        block = self._blocks[index]
        removed = self._blocks.pop(index + 1)
        block.size += removed.size
        return removed

    def snapshot(self) -> List[MemoryBlock]:
        return [replace(b) for b in self._blocks]

    def check_invariants(self, coalesced: bool = True):
        assert self._blocks, "block list is empty"
        assert self._blocks[0].start == 0, "first block does not start at 0"
        for prev, nxt in zip(self._blocks, self._blocks[1:]):
            assert prev.end == nxt.start, f"gap or overlap between {prev!r} and {nxt!r}"
            if coalesced:
                assert not (prev.free and nxt.free), f"adjacent free blocks {prev!r} {nxt!r}"
        assert self._blocks[-1].end == self.total_size, "blocks do not cover memory"
        assert all(b.size > 0 for b in self._blocks), "zero-sized block"


# -----------------------------
# Placement Strategies
# -----------------------------
def first_fit(blocks: Iterable[MemoryBlock], size: int) -> Optional[int]:
    for i, block in enumerate(blocks):
        if block.free and block.size >= size:
            return i
    return None


def best_fit(blocks: Iterable[MemoryBlock], size: int) -> Optional[int]:
    best_index = None
    smallest_diff = None

    for i, block in enumerate(blocks):
        if block.free and block.size >= size:
            diff = block.size - size
            if smallest_diff is None or diff < smallest_diff:
                smallest_diff = diff
                best_index = i

    return best_index


def worst_fit(blocks: Iterable[MemoryBlock], size: int) -> Optional[int]:
    worst_index = None
    largest_diff = -1

    for i, block in enumerate(blocks):
        if block.free and block.size >= size:
            diff = block.size - size
            if diff > largest_diff:
                largest_diff = diff
                worst_index = i

    return worst_index


class AllocationStrategy:
    FIRST_FIT = "First-Fit"
    BEST_FIT = "Best-Fit"
    WORST_FIT = "Worst-Fit"

    ALL = (FIRST_FIT, BEST_FIT, WORST_FIT)

    FINDERS: Dict[str, Callable[[Iterable[MemoryBlock], int], Optional[int]]] = {
        FIRST_FIT: first_fit,
        BEST_FIT: best_fit,
        WORST_FIT: worst_fit,
    }

    @classmethod
    def finder(cls, strategy: str):
        try:
            return cls.FINDERS[strategy]
        except KeyError:
            raise ValueError(f"Unknown allocation strategy: {strategy!r}") from None


# --------------------------------------
# Fragmentation Metrics
# --------------------------------------
@dataclass
class FragmentationMetrics:
    external_fragmentation: int = 0         # number of free blocks
    fragmentation_percentage: float = 0.0
    avg_fragment_size: float = 0.0
    largest_free_block: int = 0
    total_free: int = 0
    internal_fragmentation: int = 0         # KB wasted inside unsplit blocks


def analyze_fragmentation(blocks: Iterable[MemoryBlock]) -> FragmentationMetrics:
    """
    Summarize how scattered the free space is.

    ``fragmentation_percentage`` only measures external fragmentation: the
    share of free memory outside the largest free block. It stays 0 with a
    single free block no matter how much space is lost inside allocations;
    that loss is reported separately as ``internal_fragmentation``.
    """
    free_sizes = []
    internal = 0
    for block in blocks:
        if block.free:
            free_sizes.append(block.size)
        else:
            internal += block.size - block.requested

    metrics = FragmentationMetrics(internal_fragmentation=internal)
    if not free_sizes:
        return metrics

    total_free = sum(free_sizes)
    metrics.external_fragmentation = len(free_sizes)
    metrics.total_free = total_free
    metrics.largest_free_block = max(free_sizes)
    metrics.avg_fragment_size = total_free / len(free_sizes)

    if total_free > 0 and len(free_sizes) > 1:
        metrics.fragmentation_percentage = (
            (total_free - metrics.largest_free_block) / total_free * 100.0
        )
    return metrics


# -----------------------------
# Memory Manager
# -----------------------------
class MemoryManager:
    def __init__(self, total_size: int, strategy: str = AllocationStrategy.FIRST_FIT,
                 max_blocks: int = MAX_BLOCKS):
        if total_size <= 0:
            raise ValueError("Memory size must be positive")
        if max_blocks < 1:
            raise ValueError("max_blocks must be at least 1")
        self._find = AllocationStrategy.finder(strategy)
        self.total_size = total_size
        self.strategy = strategy
        self.max_blocks = max_blocks
        self.reset()

    def reset(self):
        self.blocks = BlockList(self.total_size, self.max_blocks)
        self.free_size = self.total_size
        self.last_failure: Optional[str] = None
        self.event_log: List[str] = []

    # -----------------------------
    # Allocate / Free
    # -----------------------------
    def allocate(self, process: Process) -> bool:
        size = process.requested_size
        if process.block_id is not None:
            return self._fail(process, AllocationFailure.ALREADY_ALLOCATED)
        if size <= 0:
            return self._fail(process, AllocationFailure.INVALID_REQUEST)
        if size > self.free_size:
            return self._fail(process, AllocationFailure.CAPACITY_EXCEEDED)

        index = self._find(self.blocks, size)
        if index is None:
            return self._fail(process, AllocationFailure.NO_FIT_FOUND)

        block = self.blocks[index]
        if block.size > size + SPLIT_THRESHOLD:
            try:
                self.blocks.split(index, size)
            except BlockTableFull:
                return self._fail(process, AllocationFailure.BLOCK_TABLE_FULL)

        block.free = False
        block.owner = process.id
        block.requested = size
        process.block_id = block.block_id
        process.state = ProcessState.RUNNING
        self.free_size -= block.size
        self.last_failure = None

        self.event_log.append(
            f"Allocated: P{process.id} ({size}KB) -> block at {block.start} ({block.size}KB)"
        )
        return True

    def _fail(self, process: Process, reason: str) -> bool:
        self.last_failure = reason
        self.event_log.append(f"Failed: P{process.id} ({process.requested_size}KB) {reason}")
        return False

    def deallocate(self, process: Process, processes: Optional[Iterable[Process]] = None) -> int:
        """
        Release the block held by ``process`` and coalesce.

        Returns the number of merges performed (0 when the process held no
        block).
        """
        if process.block_id is None:
            return 0

        block = self.blocks.get(process.block_id)
        if block is None:
            raise LookupError(f"P{process.id} references a block that no longer exists")

        block.free = True
        block.owner = None
        block.requested = 0
        self.free_size += block.size

        process.state = ProcessState.TERMINATED
        process.block_id = None
        self.event_log.append(f"Freed: P{process.id} block at {block.start} ({block.size}KB)")

        return self.coalesce(processes)

    # -----------------------------
    # Coalescing
    # -----------------------------
    def coalesce(self, processes: Optional[Iterable[Process]] = None) -> int:
        """
        Merge adjacent free blocks until none remain.

        Positions of every block after a merge shift down by one, but
        processes reference blocks by handle so they keep pointing at the
        same block. Any process in ``processes`` holding the handle of a
        block that was merged away is rebound to the surviving block.
        """
        absorbed: Dict[int, int] = {}
        merges = 0
        merged = True

        while merged:
            merged = False
            for i in range(len(self.blocks) - 1):
                curr, nxt = self.blocks[i], self.blocks[i + 1]
                if curr.free and nxt.free:
                    self.event_log.append(
                        f"Coalescing blocks at {curr.start} and {nxt.start} "
                        f"({curr.size}KB + {nxt.size}KB = {curr.size + nxt.size}KB)"
                    )
                    removed = self.blocks.merge_next(i)
                    absorbed[removed.block_id] = curr.block_id
                    merges += 1
                    merged = True
                    break

        # Only free blocks merge, so this fires only for handles no running
        # process can hold.
        if absorbed and processes is not None:
            for p in processes:
                target = p.block_id
                while target in absorbed:
                    target = absorbed[target]
                p.block_id = target

        return merges

    # -----------------------------
    # Queries
    # -----------------------------
    @property
    def used_size(self) -> int:
        return self.total_size - self.free_size

    @property
    def block_count(self) -> int:
        return len(self.blocks)

    def utilization(self) -> float:
        return self.used_size / self.total_size

    def block_index(self, process: Process) -> Optional[int]:
        if process.block_id is None:
            return None
        return self.blocks.index_of(process.block_id)

    def block_of(self, process: Process) -> Optional[MemoryBlock]:
        if process.block_id is None:
            return None
        return self.blocks.get(process.block_id)

    def owner_of(self, index: int) -> Optional[int]:
        return self.blocks[index].owner

    def get_state(self) -> List[MemoryBlock]:
        return self.blocks.snapshot()

    def get_fragmentation_metrics(self) -> FragmentationMetrics:
        return analyze_fragmentation(self.blocks)
