"""Byte statistics: n-gram tables, moments and Shannon entropy."""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Sequence

from heapgraph.conversions import BLOCK_BYTE_SIZE, generate_bit_combinations


def bin_to_nb_starting(n_gram: Iterable[int]) -> dict[str, int]:
    """Map every bit string of each width in ``n_gram`` to a zero count."""
    return {
        combination: 0
        for n in n_gram
        for combination in generate_bit_combinations(n)
    }


def compute_statistics(data: Sequence[int]) -> dict[str, float]:
    """Mean, mean absolute deviation, standard deviation, skewness and kurtosis.

    Skewness and kurtosis need at least four bytes and are NaN otherwise.
    """
    values = [float(x) for x in data]
    n = len(values)
    nan = float("nan")
    if n == 0:
        return {key: nan for key in ("mean", "mad", "std_dev", "skew", "kurt")}

    mean = sum(values) / n
    mad = sum(abs(x - mean) for x in values) / n
    std_dev = math.sqrt(sum((x - mean) ** 2 for x in values) / n)

    if n < 4 or std_dev == 0:
        skew = nan
        kurt = nan
    else:
        standardized = [(x - mean) / std_dev for x in values]
        skew = (n / ((n - 1.0) * (n - 2.0))) * sum(z**3 for z in standardized)
        kurt = (n * (n + 1.0) / ((n - 1.0) * (n - 2.0) * (n - 3.0))) * sum(
            z**4 for z in standardized
        ) - (3.0 * (n - 1.0) ** 2 / ((n - 2.0) * (n - 3.0)))

    return {"mean": mean, "mad": mad, "std_dev": std_dev, "skew": skew, "kurt": kurt}


def shannon_entropy(data: Iterable[int]) -> float:
    """Shannon entropy, in bits, of a byte sequence."""
    frequency = Counter(data)
    total = sum(frequency.values())
    entropy = 0.0
    for count in frequency.values():
        probability = count / total
        entropy -= probability * math.log2(probability)
    return entropy


def compute_chunk_start_bytes_entropy(
    all_heap_blocks: Sequence[bytes],
    chunk_data_first_block_index: int,
    nb_start_bytes: int,
) -> float:
    """Entropy of the first ``nb_start_bytes`` bytes of a chunk's user data."""
    nb_full_blocks, nb_bytes_in_last_block = divmod(nb_start_bytes, BLOCK_BYTE_SIZE)

    if len(all_heap_blocks) < nb_full_blocks:
        return 0.0

    start_data = bytearray()
    for offset in range(nb_full_blocks):
        start_data.extend(all_heap_blocks[chunk_data_first_block_index + offset])
    if nb_bytes_in_last_block > 0:
        last_block = all_heap_blocks[chunk_data_first_block_index + nb_full_blocks]
        start_data.extend(last_block[:nb_bytes_in_last_block])

    return shannon_entropy(start_data)