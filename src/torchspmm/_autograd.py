"""Differentiable sparse @ dense product with reduction."""

from __future__ import annotations

import torch
from torch import Tensor
from torch.autograd.function import once_differentiable

from ._backward import spmm_mat_backward, spmm_value_backward
from ._checks import check_numeric_dtype, warn_if_truncating
from ._spmm import _spmm
from ._utils import rowptr_to_row
from .reduction import get_reduction


class _SpMM(torch.autograd.Function):
    """out = reduce_e(value_e * mat[col_e]) over the edges e of each row of a CSR matrix."""

    @staticmethod
    def forward(
        rowptr: Tensor, col: Tensor, value: Tensor | None, mat: Tensor, reduce: str
    ) -> tuple[Tensor, Tensor]:
        out, arg_out = _spmm(rowptr, col, value, mat, reduce, stacklevel=None)
        if arg_out is None:
            # Autograd functions must return tensors: an empty one stands for the missing arg_out
            arg_out = torch.empty(0, dtype=torch.long)
        return out, arg_out

    @staticmethod
    def setup_context(ctx, inputs, output) -> None:
        rowptr, col, value, mat, reduce = inputs
        _, arg_out = output
        ctx.mark_non_differentiable(arg_out)
        ctx.save_for_backward(rowptr, col, value, mat, arg_out)
        ctx.reduce = reduce
        ctx.produces_arg = get_reduction(reduce).produces_arg

    @staticmethod
    @once_differentiable
    def backward(
        ctx, grad_out: Tensor, _: Tensor | None
    ) -> tuple[None, None, Tensor | None, Tensor | None, None]:
        rowptr, col, value, mat, arg_out = ctx.saved_tensors
        _, _, value_needs_grad, mat_needs_grad, _ = ctx.needs_input_grad
        arg = arg_out if ctx.produces_arg else None

        grad_value = None
        grad_mat = None
        if value_needs_grad or mat_needs_grad:
            row = rowptr_to_row(rowptr)
            if value_needs_grad:
                grad_value = spmm_value_backward(row, rowptr, col, mat, grad_out, ctx.reduce, arg)
            if mat_needs_grad:
                grad_mat = spmm_mat_backward(
                    row, rowptr, col, value, mat.shape, grad_out, ctx.reduce, arg
                )

        return None, None, grad_value, grad_mat, None


def spmm_reduce(
    rowptr: Tensor,
    col: Tensor,
    value: Tensor | None,
    mat: Tensor,
    reduce: str = "sum",
) -> Tensor:
    """
    Differentiable version of :func:`~torchspmm.spmm`, returning only ``out``. Gradients flow to
    ``value`` (through :func:`~torchspmm.spmm_value_backward`) and to ``mat`` (through
    :func:`~torchspmm.spmm_mat_backward`), for every reduction. Higher-order derivatives are not
    supported.

    .. admonition::
        Example

            >>> import torch
            >>>
            >>> from torchspmm import spmm_reduce
            >>>
            >>> rowptr = torch.tensor([0, 2, 3])
            >>> col = torch.tensor([0, 1, 1])
            >>> value = torch.tensor([1.0, 2.0, 3.0], requires_grad=True)
            >>> mat = torch.tensor([[1.0], [4.0]])
            >>>
            >>> out = spmm_reduce(rowptr, col, value, mat, reduce="mean")
            >>> out.sum().backward()
            >>> value.grad
            tensor([0.5000, 2.0000, 4.0000])
    """

    # `forward` runs under autograd frames, so the warning is raised before `apply`
    check_numeric_dtype("mat", mat)
    warn_if_truncating(get_reduction(reduce), mat.dtype, stacklevel=2)

    out, _ = _SpMM.apply(rowptr, col, value, mat, reduce)
    return out
