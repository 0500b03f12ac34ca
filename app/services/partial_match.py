"""
Fuzzy comparison of dot-delimited job descriptions.

A description such as "Banking Operations.Senior Analyst.Treasury" is split
into segments; the middle and last segments of two descriptions are compared
by word overlap. Used when an office has no exact job-role competency mapping.
"""
from typing import List, Tuple

MIDDLE_SEGMENT_THRESHOLD = 20.0
LAST_SEGMENT_THRESHOLD = 10.0


def split_segments(value: str) -> List[str]:
    return [part.strip() for part in (value or "").split(".") if part.strip()]


def middle_and_last(parts: List[str]) -> Tuple[str, str]:
    if len(parts) >= 3:
        return parts[1], parts[-1]
    if len(parts) == 2:
        return parts[0], parts[1]
    if len(parts) == 1:
        return parts[0], parts[0]
    return "", ""


def overlap_score(segment1: str, segment2: str) -> float:
    """
    Average of the two directional overlap percentages.
    Common words are counted over the first segment's words, duplicates included.
    """
    words1 = [w.upper() for w in segment1.split()]
    words2 = [w.upper() for w in segment2.split()]
    if not words1 or not words2:
        return 0.0

    vocabulary = set(words2)
    common = sum(1 for w in words1 if w in vocabulary)

    score1 = common / len(words1) * 100
    score2 = common / len(words2) * 100
    return (score1 + score2) / 2


def is_partial_match(description1: str, description2: str) -> bool:
    middle1, last1 = middle_and_last(split_segments(description1))
    middle2, last2 = middle_and_last(split_segments(description2))

    middle_score = overlap_score(middle1, middle2)
    last_score = overlap_score(last1, last2)

    return middle_score >= MIDDLE_SEGMENT_THRESHOLD and last_score >= LAST_SEGMENT_THRESHOLD
