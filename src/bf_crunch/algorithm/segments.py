"""
Enumerates initialization prefixes of an exact rendered length.

Segment lengths are assigned outermost first (s, c, k, j, h) and every partial
assignment reserves the shortest possible remainder, so nothing is generated
that cannot add up to the requested length.
"""
from typing import Iterator, List, Optional, Tuple

from bf_crunch.config import SearchConfig
from bf_crunch.models.shape import FIXED_LENGTH, Shape

# Shortest c-segment worth exploring; one or two symbols only ever produce
# constant or alternating counters.
MIN_C_LENGTH = 3
MIN_J_LENGTH = 2


def s_terms(length: int) -> Iterator[Tuple[int, ...]]:
    """
    Seed runs whose `{s[n-1]}<...<{s0}` rendering has `length` symbols.

    Every term costs |term| + 1 except the last, which costs |term|. The first
    term is the loop cell and must be non-zero.
    """
    stack: List[Tuple[int, Tuple[int, ...], Iterator[int]]] = [
        (length, (), iter(range(-length, length + 1)))
    ]
    while stack:
        remaining, prefix, candidates = stack[-1]
        term = next(candidates, None)
        if term is None:
            stack.pop()
            continue
        if (not prefix and term == 0) or abs(term) == remaining - 1:
            continue
        left = remaining - abs(term) - 1
        if left < 1:
            yield prefix + (term,)
        else:
            stack.append((left, prefix + (term,), iter(range(-left, left + 1))))


def c_terms(length: int) -> Iterator[Tuple[int, ...]]:
    """
    Distribution runs whose `>{c0}>{c1}...<<<` rendering has `length + 1` symbols.

    The first term costs |term| + 1, every later one |term| + 2. A zero term is
    never the last one.
    """
    stack: List[Tuple[int, Tuple[int, ...], Iterator[int]]] = [
        (length, (), iter(range(1 - length, length)))
    ]
    while stack:
        remaining, prefix, candidates = stack[-1]
        term = next(candidates, None)
        if term is None:
            stack.pop()
            continue
        if prefix and term == 0 and remaining < 3:
            continue
        left = remaining - abs(term) - (2 if prefix else 1)
        if left < 1:
            yield prefix + (term,)
        else:
            stack.append((left, prefix + (term,), iter(range(2 - left, left - 1))))


def k_pairs(length: int) -> List[Tuple[int, int]]:
    """Every (k0, k1) with |k0| + |k1| == length."""
    if length == 0:
        return [(0, 0)]
    pairs = [(-length, 0)]
    for k0 in range(1 - length, length):
        k1 = length - abs(k0)
        pairs.append((k0, k1))
        pairs.append((k0, -k1))
    pairs.append((length, 0))
    return pairs


def j_pairs(length: int) -> List[Tuple[int, int]]:
    """Every (j0, j1) with j0 + j1 == length and both positive."""
    return [(length - j1, j1) for j1 in range(1, length)]


def h_values(length: int) -> List[int]:
    return [-length, length] if length > 0 else [0]


def shape_pairs(length: int, config: SearchConfig) -> Iterator[Tuple[Shape, Optional[Shape]]]:
    """
    Lazily yield every unmirrored shape of rendered length `length` together
    with its mirrored twin, or None when it has a single c term.
    """
    s_min = max(config.min_slen, 1)
    s_max = length - FIXED_LENGTH - MIN_C_LENGTH - MIN_J_LENGTH
    if config.max_slen is not None:
        s_max = min(s_max, config.max_slen)

    for s_len in range(s_min, s_max + 1):
        for s in s_terms(s_len):
            c_min = max(config.min_clen, MIN_C_LENGTH)
            c_max = length - s_len - FIXED_LENGTH - MIN_J_LENGTH
            if config.max_clen is not None:
                c_max = min(c_max, config.max_clen)

            for c_len in range(c_min, c_max + 1):
                for c in c_terms(c_len):
                    k_max = length - s_len - c_len - FIXED_LENGTH - MIN_J_LENGTH
                    for k_len in range(0, k_max + 1):
                        for k0, k1 in k_pairs(k_len):
                            j_max = length - s_len - c_len - k_len - FIXED_LENGTH
                            for j_len in range(MIN_J_LENGTH, j_max + 1):
                                h_len = j_max - j_len
                                for j0, j1 in j_pairs(j_len):
                                    for h in h_values(h_len):
                                        shape = Shape(s=s, k0=k0, k1=k1, j0=j0, j1=j1, c=c, h=h)
                                        yield shape, shape.mirrored() if len(c) > 1 else None


def enumerate_shapes(length: int, config: SearchConfig) -> Iterator[Shape]:
    """Lazily yield every shape whose rendered prefix is exactly `length` long."""
    for shape, twin in shape_pairs(length, config):
        yield shape
        if twin is not None:
            yield twin
