"""Token-level text diff producing exactly reconstructible edit scripts.

Strings are tokenised (word runs, whitespace runs and single punctuation
characters for prose; the whole value for short identifiers), diffed with
:func:`~schemadiff.diff.myers.myers_opcodes`, and then cleaned up so that a
human reading the rendered diff does not see edits that start or end in the
middle of a word:

1. adjacent segments of the same operation are merged, deletions first;
2. short equalities sandwiched between larger edits are folded into them;
3. a lone edit between two equalities is slid to the best boundary
   (blank line > line break > sentence end > whitespace > punctuation).

Every step preserves the invariant that EQUAL+DELETE segments concatenate
to the reference text and EQUAL+INSERT segments to the input text.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterable
from enum import Enum

from schemadiff.diff.myers import myers_opcodes
from schemadiff.models.diff import EditOp, EditScript, EditSegment
from schemadiff.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

_WORD_TOKEN = re.compile(r"\w+|\s+|[^\w\s]")
_BLANK_LINE_END = re.compile(r"\n\r?\n$")
_BLANK_LINE_START = re.compile(r"^\r?\n\r?\n")


class Granularity(str, Enum):
    """Token granularity of a text diff."""

    WORD = "word"
    VALUE = "value"


def tokenize(text: str, granularity: Granularity = Granularity.WORD) -> list[str]:
    """Split *text* into tokens whose concatenation is exactly *text*."""
    if not text:
        return []
    if granularity is Granularity.VALUE:
        return [text]
    return _WORD_TOKEN.findall(text)


def texts_equal(reference: str, input_text: str, ignore_case: bool = False) -> bool:
    if ignore_case:
        return reference.lower() == input_text.lower()
    return reference == input_text


def is_equal_script(script: EditScript) -> bool:
    """True when the script describes no change at all."""
    return all(seg.op is EditOp.EQUAL for seg in script)


@profile_operation("text.diff")
def diff_text(
    reference: str,
    input_text: str,
    granularity: Granularity = Granularity.WORD,
    ignore_case: bool = False,
) -> EditScript:
    """Compute a minimal, cleaned-up edit script from *reference* to *input_text*.

    Parameters
    ----------
    reference:
        Text in the reference model.
    input_text:
        Text in the input model.
    granularity:
        Token granularity; ``VALUE`` treats each string as a single token.
    ignore_case:
        Compare tokens lower-cased.  Emitted segments always carry the
        original text, so runs that differ only in case appear as a
        DELETE+INSERT pair; use :func:`texts_equal` to decide whether the
        values differ at all.

    Returns
    -------
    EditScript
        Empty only when both strings are empty.
    """
    if reference == input_text:
        return (EditSegment(op=EditOp.EQUAL, text=reference),) if reference else ()
    if not reference:
        return (EditSegment(op=EditOp.INSERT, text=input_text),)
    if not input_text:
        return (EditSegment(op=EditOp.DELETE, text=reference),)

    ref_tokens = tokenize(reference, granularity)
    in_tokens = tokenize(input_text, granularity)
    opcodes = myers_opcodes(ref_tokens, in_tokens, key=str.lower if ignore_case else None)

    segments: list[EditSegment] = []
    for op, i1, i2, j1, j2 in opcodes:
        ref_part = "".join(ref_tokens[i1:i2])
        in_part = "".join(in_tokens[j1:j2])
        if op is EditOp.EQUAL:
            if ref_part == in_part:
                segments.append(EditSegment(op=EditOp.EQUAL, text=ref_part))
            else:
                segments.append(EditSegment(op=EditOp.DELETE, text=ref_part))
                segments.append(EditSegment(op=EditOp.INSERT, text=in_part))
        elif op is EditOp.DELETE:
            segments.append(EditSegment(op=EditOp.DELETE, text=ref_part))
        else:
            segments.append(EditSegment(op=EditOp.INSERT, text=in_part))

    segments = _merge(segments)
    if granularity is Granularity.WORD:
        segments = _merge(_cleanup_semantic(segments))
        segments = _merge(_cleanup_lossless(segments))
    return tuple(segments)


def pair_values(
    reference_values: Iterable[str],
    input_values: Iterable[str],
    ignore_case: bool = False,
) -> tuple[list[str], list[str]]:
    """Pair two unordered value collections by exact match.

    Values are matched as multisets.  Only exact (optionally case-folded)
    matches pair up; a value that merely resembles one on the other side
    is reported as removed on one side and added on the other.

    Returns
    -------
    tuple[list[str], list[str]]
        ``(removed, added)``: reference-only and input-only values in their
        original order.
    """
    ref_list = list(reference_values)
    in_list = list(input_values)

    def fold(value: str) -> str:
        return value.lower() if ignore_case else value

    return _unpaired(ref_list, Counter(fold(v) for v in in_list), fold), _unpaired(
        in_list, Counter(fold(v) for v in ref_list), fold
    )


def _unpaired(values: list[str], other: Counter[str], fold) -> list[str]:
    leftover: list[str] = []
    for value in values:
        key = fold(value)
        if other[key] > 0:
            other[key] -= 1
        else:
            leftover.append(value)
    return leftover


# ---------------------------------------------------------------------------
# Cleanup passes
# ---------------------------------------------------------------------------


def _merge(segments: list[EditSegment]) -> list[EditSegment]:
    """Merge runs: each change region becomes at most one DELETE then one INSERT."""
    out: list[EditSegment] = []
    deleted: list[str] = []
    inserted: list[str] = []

    def flush() -> None:
        if deleted:
            out.append(EditSegment(op=EditOp.DELETE, text="".join(deleted)))
        if inserted:
            out.append(EditSegment(op=EditOp.INSERT, text="".join(inserted)))
        deleted.clear()
        inserted.clear()

    for seg in segments:
        if not seg.text:
            continue
        if seg.op is EditOp.DELETE:
            deleted.append(seg.text)
        elif seg.op is EditOp.INSERT:
            inserted.append(seg.text)
        else:
            flush()
            if out and out[-1].op is EditOp.EQUAL:
                out[-1] = EditSegment(op=EditOp.EQUAL, text=out[-1].text + seg.text)
            else:
                out.append(seg)
    flush()
    return out


def _cleanup_semantic(segments: list[EditSegment]) -> list[EditSegment]:
    """Fold equalities no longer than the edits on either side into those edits."""
    segs = list(segments)
    changed = True
    while changed:
        changed = False
        for i, seg in enumerate(segs):
            if seg.op is not EditOp.EQUAL or i == 0 or i == len(segs) - 1:
                continue
            before = _edit_weight(segs, i, step=-1)
            after = _edit_weight(segs, i, step=1)
            if before and after and len(seg.text) <= before and len(seg.text) <= after:
                segs[i : i + 1] = [
                    EditSegment(op=EditOp.DELETE, text=seg.text),
                    EditSegment(op=EditOp.INSERT, text=seg.text),
                ]
                segs = _merge(segs)
                changed = True
                break
    return segs


def _edit_weight(segs: list[EditSegment], index: int, step: int) -> int:
    """Larger of deleted/inserted character counts in the edit run next to *index*."""
    deleted = inserted = 0
    j = index + step
    while 0 <= j < len(segs) and segs[j].op is not EditOp.EQUAL:
        if segs[j].op is EditOp.DELETE:
            deleted += len(segs[j].text)
        else:
            inserted += len(segs[j].text)
        j += step
    return max(deleted, inserted)


def _cleanup_lossless(segments: list[EditSegment]) -> list[EditSegment]:
    """Slide single edits surrounded by equalities onto the best boundary."""
    segs = list(segments)
    i = 1
    while i < len(segs) - 1:
        prev, cur, nxt = segs[i - 1], segs[i], segs[i + 1]
        if prev.op is EditOp.EQUAL and nxt.op is EditOp.EQUAL and cur.op is not EditOp.EQUAL:
            eq1, edit, eq2 = prev.text, cur.text, nxt.text

            common = _common_suffix(eq1, edit)
            if common:
                shared = edit[-common:]
                eq1 = eq1[:-common]
                edit = shared + edit[:-common]
                eq2 = shared + eq2

            best = (eq1, edit, eq2)
            best_score = _boundary_score(eq1, edit) + _boundary_score(edit, eq2)
            while edit and eq2 and edit[0] == eq2[0]:
                eq1 += edit[0]
                edit = edit[1:] + eq2[0]
                eq2 = eq2[1:]
                score = _boundary_score(eq1, edit) + _boundary_score(edit, eq2)
                # >= prefers the rightmost of equally good boundaries.
                if score >= best_score:
                    best_score = score
                    best = (eq1, edit, eq2)

            if best[0] != prev.text:
                replacement = [
                    EditSegment(op=EditOp.EQUAL, text=best[0]),
                    EditSegment(op=cur.op, text=best[1]),
                    EditSegment(op=EditOp.EQUAL, text=best[2]),
                ]
                segs[i - 1 : i + 2] = [s for s in replacement if s.text]
                if not best[0]:
                    i -= 1
        i += 1
    return segs


def _common_suffix(a: str, b: str) -> int:
    n = 0
    limit = min(len(a), len(b))
    while n < limit and a[-1 - n] == b[-1 - n]:
        n += 1
    return n


def _boundary_score(one: str, two: str) -> int:
    """Score how natural the boundary between *one* and *two* is (0..6)."""
    if not one or not two:
        return 6
    char1, char2 = one[-1], two[0]
    non_alnum1 = not char1.isalnum()
    non_alnum2 = not char2.isalnum()
    space1 = non_alnum1 and char1.isspace()
    space2 = non_alnum2 and char2.isspace()
    break1 = space1 and char1 in "\r\n"
    break2 = space2 and char2 in "\r\n"
    blank1 = break1 and _BLANK_LINE_END.search(one) is not None
    blank2 = break2 and _BLANK_LINE_START.match(two) is not None

    if blank1 or blank2:
        return 5
    if break1 or break2:
        return 4
    if non_alnum1 and not space1 and space2:
        return 3
    if space1 or space2:
        return 2
    if non_alnum1 or non_alnum2:
        return 1
    return 0
