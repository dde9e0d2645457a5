# engine.py
"""
Address translation engine for a demand-paged virtual memory manager.

Translates logical addresses into physical addresses through:
    - a small FIFO-replaced TLB
    - a single-level page table
    - a bounded pool of physical frames
    - a page replacement policy (FIFO or LRU) once frames run out
"""

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


class PolicyInvariantError(AssertionError):
    """Raised when a replacement policy is driven in a way that can only be a caller bug."""


# =============================================================================
# CONFIGURATION
# =============================================================================

def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class MemoryConfig:
    """
    Geometry of the simulated machine.

    Attributes:
        tlb_size (int): Number of TLB entries
        pages (int): Number of logical pages
        page_size (int): Bytes per page (and per frame)
        frames (int): Number of physical frames
        invalidate_tlb_on_evict (bool): Drop TLB entries of an evicted page.
            Turn off to keep them, so a stale entry can still hit after its
            frame was reassigned to another page.
    """
    tlb_size: int = 16
    pages: int = 256
    page_size: int = 256
    frames: int = 64
    invalidate_tlb_on_evict: bool = True

    def __post_init__(self):
        if not is_power_of_two(self.pages):
            raise ValueError("pages must be a power of two")
        if not is_power_of_two(self.page_size):
            raise ValueError("page_size must be a power of two")
        if self.tlb_size < 1:
            raise ValueError("tlb_size must be at least 1")
        if self.frames < 1 or self.frames > self.pages:
            raise ValueError("frames must be between 1 and pages")

    @property
    def offset_bits(self) -> int:
        return self.page_size.bit_length() - 1

    @property
    def offset_mask(self) -> int:
        return self.page_size - 1

    @property
    def page_mask(self) -> int:
        return self.pages - 1

    @property
    def logical_memory_size(self) -> int:
        return self.pages * self.page_size

    @property
    def physical_memory_size(self) -> int:
        return self.frames * self.page_size


def split_address(address: int, config: MemoryConfig) -> Tuple[int, int]:
    """
    Split a logical address into (logical_page, offset).

    High bits beyond the logical address space are masked away.
    """
    offset = address & config.offset_mask
    page = (address >> config.offset_bits) & config.page_mask
    return page, offset


def to_signed_byte(byte: int) -> int:
    return byte - 256 if byte > 127 else byte


# =============================================================================
# TLB
# =============================================================================

@dataclass
class TLBEntry:
    page: int
    frame: int


class TLBCache:
    """
    Fixed-capacity TLB kept as a circular array.

    The slot for the next insert is insert_count % capacity, so the oldest
    entry is always the one overwritten, regardless of how often it hit.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.slots: List[Optional[TLBEntry]] = [None] * capacity
        self.insert_count = 0

    def _live_indices(self) -> Iterator[int]:
        # oldest first
        for i in range(max(self.insert_count - self.capacity, 0), self.insert_count):
            yield i % self.capacity

    def probe(self, page: int) -> Optional[int]:
        for i in self._live_indices():
            entry = self.slots[i]
            if entry is not None and entry.page == page:
                return entry.frame
        return None

    def insert(self, page: int, frame: int):
        self.slots[self.insert_count % self.capacity] = TLBEntry(page, frame)
        self.insert_count += 1

    def invalidate(self, page: int) -> int:
        """Blank every slot caching `page`. Returns the number of slots cleared."""
        cleared = 0
        for i, entry in enumerate(self.slots):
            if entry is not None and entry.page == page:
                self.slots[i] = None
                cleared += 1
        return cleared

    def flush(self):
        self.slots = [None] * self.capacity
        self.insert_count = 0

    def entries(self) -> List[TLBEntry]:
        return [self.slots[i] for i in self._live_indices() if self.slots[i] is not None]


# =============================================================================
# PAGE TABLE & FRAME TABLE
# =============================================================================

class PageTable:
    """Single-level page table; None marks a page with no frame."""

    def __init__(self, pages: int):
        self.entries: List[Optional[int]] = [None] * pages

    def lookup(self, page: int) -> Optional[int]:
        return self.entries[page]

    def bind(self, page: int, frame: int):
        # caller clears the frame's previous owner first
        self.entries[page] = frame

    def clear(self, page: int):
        self.entries[page] = None

    def resident_pages(self) -> Dict[int, int]:
        return {page: frame for page, frame in enumerate(self.entries) if frame is not None}


@dataclass
class Frame:
    """
    Represents a physical memory frame.

    Attributes:
        frame_no (int): The frame's index in physical memory
        occupied (bool): True if a page is currently loaded here
        page_no (Optional[int]): The logical page stored here, None if free
    """
    frame_no: int
    occupied: bool = False
    page_no: Optional[int] = None


class FrameAllocator:
    """
    Hands out never-used frames in order and tracks which page owns each frame.
    """

    def __init__(self, frames: int):
        self.frame_count = frames
        self.next_free = 0
        self.frames: List[Frame] = [Frame(i) for i in range(frames)]

    def allocate_free(self) -> Optional[int]:
        """
        Return the next never-used frame, or None once every frame was handed out.
        """
        if self.next_free >= self.frame_count:
            return None
        frame_no = self.next_free
        self.next_free += 1
        return frame_no

    def evict_owner_of(self, frame_no: int, page_table: PageTable) -> Optional[int]:
        """
        Clear the page table entry currently bound to `frame_no`.

        A linear scan over the page table; a reverse index would replace it
        for larger address spaces.

        Returns:
            Optional[int]: The evicted logical page, None if the frame was unowned
        """
        for page, bound in enumerate(page_table.entries):
            if bound == frame_no:
                page_table.clear(page)
                frame = self.frames[frame_no]
                frame.occupied = False
                frame.page_no = None
                return page
        return None

    def assign(self, frame_no: int, page: int):
        frame = self.frames[frame_no]
        frame.occupied = True
        frame.page_no = page


# =============================================================================
# REPLACEMENT POLICIES
# =============================================================================

class ReplacementPolicy:
    """
    Base class for page replacement algorithms.

    FIFO: First-In-First-Out - replaces the frame filled longest ago
    LRU:  Least Recently Used - replaces the frame not used for longest time

    Subclasses implement on_frame_used() and select_victim(); register them in
    POLICIES to make them selectable.
    """
    FIFO = "FIFO"
    LRU = "LRU"

    name = ""

    def __init__(self, frames: int):
        self.frames = frames

    def on_frame_used(self, frame_no: int, clock: int, loaded: bool = False):
        """
        Record a use of `frame_no` at logical time `clock`.

        Args:
            frame_no (int): Frame that served the translation
            clock (int): Logical clock, one tick per translated address
            loaded (bool): True when the page was just loaded into this frame
        """
        raise NotImplementedError

    def select_victim(self) -> int:
        raise NotImplementedError

    def snapshot(self) -> List[int]:
        raise NotImplementedError


class FIFOPolicy(ReplacementPolicy):
    """Circular queue of frames in load order."""

    name = ReplacementPolicy.FIFO

    def __init__(self, frames: int):
        super().__init__(frames)
        self.queue: List[int] = [0] * frames
        self.head = 0
        self.size = 0

    def on_frame_used(self, frame_no: int, clock: int, loaded: bool = False):
        if not loaded:
            return
        if self.size == self.frames:
            raise PolicyInvariantError(f"FIFO queue full, cannot track frame {frame_no}")
        self.queue[(self.head + self.size) % self.frames] = frame_no
        self.size += 1

    def select_victim(self) -> int:
        if self.size == 0:
            raise PolicyInvariantError("FIFO queue empty, no frame to evict")
        frame_no = self.queue[self.head]
        self.head = (self.head + 1) % self.frames
        self.size -= 1
        return frame_no

    def snapshot(self) -> List[int]:
        """Frames from oldest to newest."""
        return [self.queue[(self.head + i) % self.frames] for i in range(self.size)]


class LRUPolicy(ReplacementPolicy):
    """Per-frame timestamp of last use; -1 means never used."""

    name = ReplacementPolicy.LRU

    def __init__(self, frames: int):
        super().__init__(frames)
        self.last_used: List[int] = [-1] * frames

    def on_frame_used(self, frame_no: int, clock: int, loaded: bool = False):
        self.last_used[frame_no] = clock

    def select_victim(self) -> int:
        used = [f for f in range(self.frames) if self.last_used[f] >= 0]
        if not used:
            raise PolicyInvariantError("LRU has no used frame to evict")
        # min() keeps the first of equal keys, so ties go to the lowest frame
        return min(used, key=lambda f: self.last_used[f])

    def snapshot(self) -> List[int]:
        return list(self.last_used)


POLICIES = {
    ReplacementPolicy.FIFO: FIFOPolicy,
    ReplacementPolicy.LRU: LRUPolicy,
}

# numeric selectors accepted on the command line
POLICY_CODES = {
    0: ReplacementPolicy.FIFO,
    1: ReplacementPolicy.LRU,
}


def make_policy(selector, frames: int) -> ReplacementPolicy:
    """
    Build a replacement policy from a numeric code (0, 1) or a name ("FIFO", "LRU").

    Raises:
        ValueError: If the selector names no known policy
    """
    name = POLICY_CODES.get(selector, selector)
    if isinstance(name, str):
        name = name.upper()
    if name not in POLICIES:
        raise ValueError(f"Unknown replacement policy: {selector!r}")
    return POLICIES[name](frames)


# =============================================================================
# TRANSLATOR - Core Simulation Engine
# =============================================================================

@dataclass
class Translation:
    """Outcome of translating one logical address."""
    logical_address: int
    physical_address: int
    value: int
    page: int
    offset: int
    frame: int
    tlb_hit: bool = False
    page_fault: bool = False
    evicted_page: Optional[int] = None


@dataclass
class Counters:
    total_addresses: int = 0
    tlb_hits: int = 0
    page_table_hits: int = 0
    page_faults: int = 0


class Translator:
    """
    Core simulation engine for logical-to-physical address translation.

    One Translator owns all the state of a run: physical memory, TLB, page
    table, frame table, replacement policy, logical clock and statistics.

    Attributes:
        config (MemoryConfig): Machine geometry
        backing: Read-only, sliceable page image of the logical address space
        memory (bytearray): Physical memory, frames * page_size bytes
        tlb (TLBCache): Translation lookaside buffer
        page_table (PageTable): Logical page -> frame mapping
        allocator (FrameAllocator): Free-frame counter and frame table
        policy (ReplacementPolicy): Victim selection once frames are exhausted
        clock (int): Logical clock, incremented once per address
        counters (Counters): Hit / fault statistics
        event_log (deque): Most recent translation events, oldest first
    """

    def __init__(self, backing, policy: ReplacementPolicy,
                 config: Optional[MemoryConfig] = None, event_log_size: int = 1000):
        """
        Args:
            backing: bytes-like page image (bytes, bytearray, mmap, BackingStore)
            policy (ReplacementPolicy): Replacement policy sized for config.frames
            config (MemoryConfig): Geometry, defaults to 64 frames of 256 bytes
            event_log_size (int): Events kept in event_log; 0 keeps none

        Raises:
            ValueError: If the page image or the policy does not fit the geometry
        """
        self.config = config or MemoryConfig()
        if len(backing) < self.config.logical_memory_size:
            raise ValueError(
                f"Backing store holds {len(backing)} bytes, "
                f"{self.config.logical_memory_size} required"
            )
        if policy.frames != self.config.frames:
            raise ValueError("Replacement policy sized for a different frame count")
        self.backing = backing
        self.policy = policy
        self.event_log_size = event_log_size
        self.reset()

    def reset(self):
        """Return to the initial state: empty TLB and page table, all frames free."""
        self.memory = bytearray(self.config.physical_memory_size)
        self.tlb = TLBCache(self.config.tlb_size)
        self.page_table = PageTable(self.config.pages)
        self.allocator = FrameAllocator(self.config.frames)
        self.policy = type(self.policy)(self.config.frames)
        self.clock = 0
        self.counters = Counters()
        self.event_log: deque = deque(maxlen=self.event_log_size)

    # =========================================================================
    # TRANSLATION
    # =========================================================================

    def translate(self, address: int) -> Translation:
        """
        Translate one logical address, handling TLB misses and page faults.

        Args:
            address (int): Logical address

        Returns:
            Translation: Physical address, signed byte value and what happened
        """
        page, offset = split_address(address, self.config)
        self.counters.total_addresses += 1
        self.clock += 1

        tlb_hit = False
        page_fault = False
        evicted_page = None

        frame_no = self.tlb.probe(page)
        if frame_no is not None:
            tlb_hit = True
            self.counters.tlb_hits += 1
            self.event_log.append(f"TLB hit: Page {page} -> Frame {frame_no}")
        else:
            frame_no = self.page_table.lookup(page)
            if frame_no is not None:
                self.counters.page_table_hits += 1
                self.event_log.append(f"Page table hit: Page {page} -> Frame {frame_no}")
            else:
                page_fault = True
                self.counters.page_faults += 1
                self.event_log.append(f"Fault: Page {page} not in memory")
                frame_no, evicted_page = self._handle_fault(page)
            self.tlb.insert(page, frame_no)

        self.policy.on_frame_used(frame_no, self.clock, loaded=page_fault)

        physical_address = (frame_no << self.config.offset_bits) | offset
        value = to_signed_byte(self.memory[frame_no * self.config.page_size + offset])

        return Translation(
            logical_address=address,
            physical_address=physical_address,
            value=value,
            page=page,
            offset=offset,
            frame=frame_no,
            tlb_hit=tlb_hit,
            page_fault=page_fault,
            evicted_page=evicted_page,
        )

    def _handle_fault(self, page: int) -> Tuple[int, Optional[int]]:
        evicted_page = None
        frame_no = self.allocator.allocate_free()
        if frame_no is None:
            frame_no = self.policy.select_victim()
            evicted_page = self.allocator.evict_owner_of(frame_no, self.page_table)
            self.event_log.append(f"Evicting: Page {evicted_page} from Frame {frame_no}")
            if evicted_page is not None and self.config.invalidate_tlb_on_evict:
                self.tlb.invalidate(evicted_page)

        self._load_page(page, frame_no)
        self.page_table.bind(page, frame_no)
        self.allocator.assign(frame_no, page)
        self.event_log.append(f"Loaded: Page {page} -> Frame {frame_no}")
        return frame_no, evicted_page

    def _load_page(self, page: int, frame_no: int):
        size = self.config.page_size
        src = page * size
        dst = frame_no * size
        self.memory[dst:dst + size] = self.backing[src:src + size]

    def run(self, addresses: Iterable[int]) -> Iterator[Translation]:
        """Translate each address in turn."""
        for address in addresses:
            yield self.translate(address)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get_frame_table(self) -> List[Frame]:
        return self.allocator.frames

    def get_page_table_snapshot(self) -> Dict[int, int]:
        return self.page_table.resident_pages()

    def get_tlb_snapshot(self) -> List[TLBEntry]:
        return self.tlb.entries()

    def get_stats(self) -> Dict[str, float]:
        """
        Calculate and return simulation statistics.

        Returns:
            Dict[str, float]: Statistics including:
                - total_addresses: Addresses translated so far
                - tlb_hits / tlb_misses
                - page_table_hits: TLB misses resolved by the page table
                - page_faults
                - page_fault_rate, tlb_hit_rate: 0.0 before any translation
        """
        c = self.counters
        total = c.total_addresses
        return {
            "total_addresses": total,
            "tlb_hits": c.tlb_hits,
            "tlb_misses": total - c.tlb_hits,
            "page_table_hits": c.page_table_hits,
            "page_faults": c.page_faults,
            "page_fault_rate": (c.page_faults / total) if total > 0 else 0.0,
            "tlb_hit_rate": (c.tlb_hits / total) if total > 0 else 0.0,
        }
