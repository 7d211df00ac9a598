from collections.abc import Sequence
from math import prod

import torch
from torch import Tensor

from ._checks import (
    batch_size,
    check_cpu,
    check_dim,
    check_edge_count,
    check_index_dtype,
    check_min_dim,
    check_numeric_dtype,
    check_output_shaped,
    check_rowptr,
    check_same_dtype,
)
from ._errors import ShapeMismatchError
from ._utils import degree
from .reduction import Reduction, get_reduction


def spmm_value_backward(
    row: Tensor,
    rowptr: Tensor,
    col: Tensor,
    mat: Tensor,
    grad: Tensor,
    reduce: str = "sum",
    arg_out: Tensor | None = None,
) -> Tensor:
    r"""
    Computes the gradient of :func:`~torchspmm.spmm` with respect to the value of each edge, given
    the gradient ``grad`` of its output.

    For ``"sum"``, the gradient of edge :math:`e`, going from row :math:`r_e` to column
    :math:`c_e`, is
    :math:`\sum_b \sum_k \text{mat}[b, c_e, k] \, \text{grad}[b, r_e, k]`. For ``"mean"``, each
    term of the sum over :math:`b` is further divided by the number of edges of row :math:`r_e`
    (or by :math:`1` if it has none). For ``"min"`` and ``"max"``, the gradient of each output
    element only flows through the edge that produced it, as recorded in ``arg_out``.

    :param row: Row of each edge, of length ``E``.
    :param rowptr: Row pointers of the sparse matrix, of length ``M + 1``.
    :param col: Column index of each edge, of length ``E``.
    :param mat: The dense tensor of shape ``[..., N, K]`` used in the forward pass.
    :param grad: Gradient with respect to the output of the forward pass, of shape ``[..., M, K]``
        and of the dtype of ``mat``.
    :param reduce: Name of the reduction used in the forward pass.
    :param arg_out: The ``arg_out`` returned by the forward pass. Required for ``"min"`` and
        ``"max"``, ignored otherwise.
    :returns: A vector of length ``E`` and of the dtype of ``mat``.
    """

    check_cpu(mat=mat)
    check_min_dim("mat", mat, 2)
    check_numeric_dtype("mat", mat)
    check_same_dtype("grad", grad, "mat", mat)
    reduction = _check_backward_inputs(row, rowptr, col, grad, reduce, arg_out, mat.shape)

    b = batch_size(mat)
    mat = mat.contiguous()
    n, k = mat.shape[-2:]
    m = rowptr.numel() - 1
    row = row.long()

    edge_grad = grad.contiguous().reshape(b, m, k).index_select(1, row)
    edge_mat = mat.reshape(b, n, k).index_select(1, col.long())
    products = _route(reduction, edge_mat * edge_grad, row, arg_out, b, m, k)
    dots = products.sum(dim=-1, dtype=mat.dtype)
    dots = reduction.scale(dots, degree(rowptr).index_select(0, row))
    return dots.sum(dim=0, dtype=mat.dtype)


def spmm_mat_backward(
    row: Tensor,
    rowptr: Tensor,
    col: Tensor,
    value: Tensor | None,
    mat_shape: Sequence[int],
    grad: Tensor,
    reduce: str = "sum",
    arg_out: Tensor | None = None,
) -> Tensor:
    r"""
    Computes the gradient of :func:`~torchspmm.spmm` with respect to ``mat``, given the gradient
    ``grad`` of its output.

    For ``"sum"`` and ``"mean"``, this is the product of the transposed sparse matrix with
    ``grad``, the rows of ``grad`` being first divided by their number of edges for ``"mean"``.
    For ``"min"`` and ``"max"``, the gradient of each output element is routed to the element of
    ``mat`` that produced it, as recorded in ``arg_out``, scaled by the value of the winning edge.

    :param row: Row of each edge, of length ``E``.
    :param rowptr: Row pointers of the sparse matrix, of length ``M + 1``.
    :param col: Column index of each edge, of length ``E``.
    :param value: Optional value of each edge, of length ``E`` and of the dtype of ``grad``.
    :param mat_shape: Shape ``[..., N, K]`` of the dense tensor used in the forward pass.
    :param grad: Gradient with respect to the output of the forward pass, of shape ``[..., M, K]``.
    :param reduce: Name of the reduction used in the forward pass.
    :param arg_out: The ``arg_out`` returned by the forward pass. Required for ``"min"`` and
        ``"max"``, ignored otherwise.
    :returns: A tensor of shape ``mat_shape`` and of the dtype of ``grad``.
    """

    mat_shape = torch.Size(mat_shape)
    if len(mat_shape) < 2:
        raise ShapeMismatchError(
            f"Parameter `mat_shape` should have at least 2 dimensions. Found `mat_shape = "
            f"{mat_shape}`."
        )
    check_cpu(value=value)
    check_numeric_dtype("grad", grad)
    if value is not None:
        check_dim("value", value, 1)
        check_same_dtype("value", value, "grad", grad)
        check_edge_count(col, value=value)
    reduction = _check_backward_inputs(row, rowptr, col, grad, reduce, arg_out, mat_shape)

    b = prod(mat_shape[:-2])
    n, k = mat_shape[-2:]
    m = rowptr.numel() - 1
    row = row.long()

    edge_grad = grad.contiguous().reshape(b, m, k).index_select(1, row)
    edge_grad = reduction.scale(edge_grad, degree(rowptr).index_select(0, row))
    if value is not None:
        edge_grad = edge_grad * value.view(1, -1, 1)
    edge_grad = _route(reduction, edge_grad, row, arg_out, b, m, k)

    grad_mat = torch.zeros([b, n, k], dtype=grad.dtype)
    grad_mat = grad_mat.index_add(1, col.long(), edge_grad)
    return grad_mat.view(mat_shape)


def _check_backward_inputs(
    row: Tensor,
    rowptr: Tensor,
    col: Tensor,
    grad: Tensor,
    reduce: str,
    arg_out: Tensor | None,
    mat_shape: torch.Size,
) -> Reduction:
    check_cpu(row=row, rowptr=rowptr, col=col, grad=grad, arg_out=arg_out)
    check_dim("row", row, 1)
    check_rowptr(rowptr)
    check_dim("col", col, 1)
    check_index_dtype(row=row, rowptr=rowptr, col=col)
    check_edge_count(col, row=row)
    n_rows = rowptr.numel() - 1
    check_output_shaped("grad", grad, mat_shape, n_rows)

    reduction = get_reduction(reduce)
    if reduction.produces_arg:
        if arg_out is None:
            raise ValueError(
                f"Parameter `arg_out` is required to differentiate through reduction {reduction}."
            )
        check_output_shaped("arg_out", arg_out, mat_shape, n_rows)
        if arg_out.dtype != torch.long:
            raise TypeError(
                f"Parameter `arg_out` should be a tensor of dtype {torch.long}. Found "
                f"`arg_out.dtype = {arg_out.dtype}`."
            )

    return reduction


def _route(
    reduction: Reduction,
    edge_values: Tensor,
    row: Tensor,
    arg_out: Tensor | None,
    b: int,
    m: int,
    k: int,
) -> Tensor:
    """
    Keeps, in the per-edge tensor ``edge_values`` of shape ``[B, E, K]``, only the entries that
    flow through their edge. Entries of edges that did not win are exactly zero, whatever the
    factors already multiplied into them.
    """

    arg = arg_out.reshape(b, m, k) if reduction.produces_arg else None
    return reduction.route(edge_values, row, arg)
