"""
Slow, element-by-element implementations of the sparse @ dense product with reduction, used as
oracles in the tests.
"""

import math

import torch
from torch import Tensor


def reference_spmm(
    rowptr: Tensor, col: Tensor, value: Tensor | None, mat: Tensor, reduce: str
) -> tuple[Tensor, Tensor]:
    n, k = mat.shape[-2:]
    mat3 = mat.reshape(-1, n, k)
    b = mat3.shape[0]
    m = rowptr.numel() - 1
    e_total = col.numel()

    out = torch.zeros([b, m, k], dtype=mat.dtype)
    arg_out = torch.full([b, m, k], e_total, dtype=torch.long)

    for i_b in range(b):
        for i_m in range(m):
            start, end = int(rowptr[i_m]), int(rowptr[i_m + 1])
            for i_k in range(k):
                best = _initial_best(reduce, mat.dtype)
                best_edge = e_total
                acc = 0
                for e in range(start, end):
                    contribution = mat3[i_b, col[e], i_k]
                    if value is not None:
                        contribution = value[e] * contribution
                    contribution = contribution.item()
                    acc += contribution
                    if _is_better(contribution, best, reduce):
                        best = contribution
                        best_edge = e
                count = end - start
                if reduce in {"sum", "add"}:
                    out[i_b, i_m, i_k] = acc
                elif reduce == "mean":
                    out[i_b, i_m, i_k] = acc / max(count, 1)
                elif count > 0:
                    out[i_b, i_m, i_k] = best
                    arg_out[i_b, i_m, i_k] = best_edge

    shape = mat.shape[:-2] + (m, k)
    return out.view(shape), arg_out.view(shape)


def _initial_best(reduce: str, dtype: torch.dtype) -> int | float:
    if dtype.is_floating_point:
        return math.inf if reduce == "min" else -math.inf
    info = torch.iinfo(dtype)
    return info.max if reduce == "min" else info.min


def _is_better(candidate: float, current: float, reduce: str) -> bool:
    if reduce == "min":
        return candidate < current
    if reduce == "max":
        return candidate > current
    return False
