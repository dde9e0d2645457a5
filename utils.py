# utils.py

import mmap
import random
import re
from typing import List, Optional

from engine import MemoryConfig, Translation

# Address lines hold at most 9 characters of text.
MAX_LINE_LENGTH = 9

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ResourceError(Exception):
    """A backing store or address file could not be opened or is unusable."""


def get_color(occupied):
    """Return a color for occupied/free frames."""
    if not occupied:
        return "lightgray"
    # random pastel colors
    return f"hsl({random.randint(0,360)}, 70%, 75%)"


# -----------------------------
# Address input
# -----------------------------
def parse_address(line: str) -> int:
    """
    Parse one input line the way atoi() does: the leading integer, or 0.

    Overlong lines parse as 0.
    """
    text = line.rstrip("\r\n")
    if len(text) > MAX_LINE_LENGTH:
        return 0
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def read_addresses(path: str) -> List[int]:
    try:
        # undecodable bytes parse as 0
        with open(path, "r", errors="replace") as f:
            return [parse_address(line) for line in f]
    except OSError as e:
        raise ResourceError(f"Cannot read address file {path}: {e.strerror}") from e


def parse_address_sequence(text: str) -> List[int]:
    """Parse a comma or whitespace separated address list (dashboard input)."""
    return [int(tok) for tok in re.split(r"[,\s]+", text) if tok != ""]


# -----------------------------
# Backing store
# -----------------------------
class BackingStore:
    """
    Read-only view of the backing store file, mapped with mmap.

    Use as a context manager; the mapping is released on exit. Supports len()
    and slicing so it can be handed straight to a Translator.
    """

    def __init__(self, filename: str, config: Optional[MemoryConfig] = None):
        self.filename = filename
        self.config = config or MemoryConfig()
        self._file = None
        self._map = None

    def open(self):
        try:
            self._file = open(self.filename, "rb")
        except OSError as e:
            raise ResourceError(f"Cannot open backing store {self.filename}: {e.strerror}") from e
        try:
            self._map = mmap.mmap(self._file.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as e:
            # empty files cannot be mapped
            self._file.close()
            self._file = None
            raise ResourceError(f"Cannot map backing store {self.filename}: {e}") from e
        if len(self._map) < self.config.logical_memory_size:
            size = len(self._map)
            self.close()
            raise ResourceError(
                f"Backing store {self.filename} holds {size} bytes, "
                f"{self.config.logical_memory_size} required"
            )
        return self

    def close(self):
        if self._map is not None:
            self._map.close()
            self._map = None
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __len__(self):
        return len(self._map) if self._map is not None else 0

    def __getitem__(self, key):
        if self._map is None:
            raise ResourceError(f"Backing store {self.filename} is not open")
        return self._map[key]

    def read_page(self, page_number: int) -> bytes:
        start = page_number * self.config.page_size
        return self[start:start + self.config.page_size]


def generate_backing_store(config: Optional[MemoryConfig] = None, seed: Optional[int] = None) -> bytes:
    """Random page image covering the whole logical address space."""
    config = config or MemoryConfig()
    rng = random.Random(seed)
    return bytes(rng.randrange(256) for _ in range(config.logical_memory_size))


# -----------------------------
# Output
# -----------------------------
def format_translation(t: Translation) -> str:
    return f"Virtual address: {t.logical_address} Physical address: {t.physical_address} Value: {t.value}"


def format_report(stats) -> List[str]:
    return [
        f"Number of Translated Addresses = {stats['total_addresses']}",
        f"Page Faults = {stats['page_faults']}",
        f"Page Fault Rate = {stats['page_fault_rate']:.3f}",
        f"TLB Hits = {stats['tlb_hits']}",
        f"TLB Hit Rate = {stats['tlb_hit_rate']:.3f}",
    ]
