"""Myers' O((N+M)D) shortest edit script over token sequences.

Returns opcodes in the spirit of :meth:`difflib.SequenceMatcher.get_opcodes`
(``(op, a_start, a_end, b_start, b_end)``) but the script is guaranteed to
be *minimal*: no other sequence of inserts and deletes transforming ``a``
into ``b`` is shorter.

Reference: E. Myers, "An O(ND) Difference Algorithm and Its Variations",
Algorithmica 1 (1986).
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from typing import Any

from schemadiff.models.diff import EditOp

Opcode = tuple[EditOp, int, int, int, int]


def myers_opcodes(
    a: Sequence[Any],
    b: Sequence[Any],
    key: Callable[[Any], Hashable] | None = None,
) -> list[Opcode]:
    """Compute grouped opcodes transforming *a* into *b*.

    Parameters
    ----------
    a, b:
        Reference and input token sequences.
    key:
        Optional projection applied to each token before comparison
        (e.g. ``str.lower`` for case-insensitive matching).

    Returns
    -------
    list[Opcode]
        Adjacent opcodes never share the same operation.  Within a changed
        region deletions precede insertions.
    """
    ka = [key(t) for t in a] if key else list(a)
    kb = [key(t) for t in b] if key else list(b)

    n, m = len(ka), len(kb)
    prefix = 0
    while prefix < n and prefix < m and ka[prefix] == kb[prefix]:
        prefix += 1
    suffix = 0
    while suffix < n - prefix and suffix < m - prefix and ka[n - 1 - suffix] == kb[m - 1 - suffix]:
        suffix += 1

    steps: list[tuple[EditOp, int, int]] = [(EditOp.EQUAL, i, i) for i in range(prefix)]
    steps.extend(
        (op, ai + prefix, bi + prefix)
        for op, ai, bi in _middle_snake_steps(ka[prefix : n - suffix], kb[prefix : m - suffix])
    )
    steps.extend((EditOp.EQUAL, n - suffix + i, m - suffix + i) for i in range(suffix))

    return _group(_deletes_first(steps))


def _middle_snake_steps(a: list[Hashable], b: list[Hashable]) -> list[tuple[EditOp, int, int]]:
    """Single-token steps of the shortest edit script (forward greedy + backtrack)."""
    n, m = len(a), len(b)
    if n == 0:
        return [(EditOp.INSERT, 0, j) for j in range(m)]
    if m == 0:
        return [(EditOp.DELETE, i, 0) for i in range(n)]

    v: dict[int, int] = {1: 0}
    trace: list[dict[int, int]] = []
    found = False
    for d in range(n + m + 1):
        trace.append(v.copy())
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[k - 1] < v[k + 1]):
                x = v[k + 1]
            else:
                x = v[k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[k] = x
            if x >= n and y >= m:
                found = True
                break
        if found:
            break

    steps: list[tuple[EditOp, int, int]] = []
    x, y = n, m
    for d in range(len(trace) - 1, -1, -1):
        vd = trace[d]
        k = x - y
        if k == -d or (k != d and vd[k - 1] < vd[k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = vd[prev_k]
        prev_y = prev_x - prev_k
        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            steps.append((EditOp.EQUAL, x, y))
        if d > 0:
            if x == prev_x:
                steps.append((EditOp.INSERT, prev_x, prev_y))
            else:
                steps.append((EditOp.DELETE, prev_x, prev_y))
        x, y = prev_x, prev_y

    steps.reverse()
    return steps


def _deletes_first(steps: list[tuple[EditOp, int, int]]) -> list[tuple[EditOp, int, int]]:
    """Within each run of non-equal steps, move deletions before insertions."""
    out: list[tuple[EditOp, int, int]] = []
    pending_del: list[tuple[EditOp, int, int]] = []
    pending_ins: list[tuple[EditOp, int, int]] = []
    for step in steps:
        if step[0] is EditOp.DELETE:
            pending_del.append(step)
        elif step[0] is EditOp.INSERT:
            pending_ins.append(step)
        else:
            out.extend(pending_del)
            out.extend(pending_ins)
            pending_del, pending_ins = [], []
            out.append(step)
    out.extend(pending_del)
    out.extend(pending_ins)
    return out


def _group(steps: list[tuple[EditOp, int, int]]) -> list[Opcode]:
    opcodes: list[Opcode] = []
    ai = bi = 0
    for op, _, _ in steps:
        if op is EditOp.EQUAL:
            a_len, b_len = 1, 1
        elif op is EditOp.DELETE:
            a_len, b_len = 1, 0
        else:
            a_len, b_len = 0, 1
        if opcodes and opcodes[-1][0] is op:
            prev = opcodes[-1]
            opcodes[-1] = (op, prev[1], prev[2] + a_len, prev[3], prev[4] + b_len)
        else:
            opcodes.append((op, ai, ai + a_len, bi, bi + b_len))
        ai += a_len
        bi += b_len
    return opcodes
