import torch
from torch import Tensor

from ._checks import (
    batch_size,
    check_cpu,
    check_dim,
    check_edge_count,
    check_edges_match_rowptr,
    check_index_dtype,
    check_min_dim,
    check_numeric_dtype,
    check_rowptr,
    check_same_dtype,
    warn_if_truncating,
)
from ._utils import degree, rowptr_to_row
from .reduction import get_reduction


def spmm(
    rowptr: Tensor,
    col: Tensor,
    value: Tensor | None,
    mat: Tensor,
    reduce: str = "sum",
) -> tuple[Tensor, Tensor | None]:
    r"""
    Computes the product of a sparse matrix :math:`A` of shape ``[M, N]``, given in compressed
    sparse row (CSR) form, with a batch of dense matrices ``mat``, in which the contributions of the
    nonzero entries of each row are combined by the reduction ``reduce`` instead of being summed.

    For each batch index :math:`b`, output row :math:`m` and feature :math:`k`, the contributions
    :math:`v_e \, \text{mat}[b, c_e, k]` of the edges :math:`e` of row :math:`m` (with :math:`c_e`
    their column and :math:`v_e` their value, or :math:`1` if ``value`` is ``None``) are reduced
    into :math:`\text{out}[b, m, k]`. Rows without any edge are set to zero.

    :param rowptr: Row pointers of :math:`A`, of length ``M + 1``. It should be non-decreasing,
        start at ``0`` and end at the number of edges ``E``.
    :param col: Column index of each edge, of length ``E``, with edges ordered by row.
    :param value: Optional value of each edge, of length ``E`` and of the same dtype as ``mat``.
        If ``None``, every edge has value :math:`1`.
    :param mat: Dense tensor of shape ``[..., N, K]``. All leading dimensions are treated as batch
        dimensions.
    :param reduce: Name of the reduction: ``"sum"`` (or ``"add"``), ``"mean"``, ``"min"`` or
        ``"max"``.
    :returns: The pair ``(out, arg_out)``. ``out`` has shape ``[..., M, K]`` and the dtype of
        ``mat``. For ``"min"`` and ``"max"``, ``arg_out`` is an int64 tensor of the same shape
        holding the index of the edge that produced each element of ``out`` (the first one in case
        of ties), or ``E`` for rows without any edge. For other reductions, it is ``None``.

    .. admonition::
        Example

            >>> import torch
            >>>
            >>> from torchspmm import spmm
            >>>
            >>> rowptr = torch.tensor([0, 2])
            >>> col = torch.tensor([0, 1])
            >>> mat = torch.tensor([[1.0], [4.0]])
            >>>
            >>> spmm(rowptr, col, None, mat, reduce="max")
            (tensor([[4.]]), tensor([[1]]))
    """

    return _spmm(rowptr, col, value, mat, reduce, stacklevel=2)


def _spmm(
    rowptr: Tensor,
    col: Tensor,
    value: Tensor | None,
    mat: Tensor,
    reduce: str,
    stacklevel: int | None,
) -> tuple[Tensor, Tensor | None]:
    """
    Implementation of :func:`spmm`. ``stacklevel`` locates the truncation warning as in
    :func:`warnings.warn`, counted from the caller of this function. No warning is emitted if it is
    ``None``.
    """

    check_cpu(rowptr=rowptr, col=col, value=value, mat=mat)
    check_rowptr(rowptr)
    check_dim("col", col, 1)
    if value is not None:
        check_dim("value", value, 1)
    check_min_dim("mat", mat, 2)
    check_index_dtype(rowptr=rowptr, col=col)
    check_numeric_dtype("mat", mat)
    if value is not None:
        check_same_dtype("value", value, "mat", mat)
    check_edge_count(col, value=value)
    check_edges_match_rowptr(rowptr, col)
    reduction = get_reduction(reduce)
    b = batch_size(mat)
    if stacklevel is not None:
        warn_if_truncating(reduction, mat.dtype, stacklevel + 1)

    mat = mat.contiguous()
    m = rowptr.numel() - 1
    n, k = mat.shape[-2:]
    e = col.numel()

    row = rowptr_to_row(rowptr)
    contributions = mat.reshape(b, n, k).index_select(1, col.long())
    if value is not None:
        contributions = contributions * value.view(1, -1, 1)

    acc = torch.full([b, m, k], reduction.init(mat.dtype), dtype=mat.dtype)
    arg = torch.full([b, m, k], e, dtype=torch.long) if reduction.produces_arg else None

    acc, arg = reduction.update(acc, contributions, row, arg)
    out, arg_out = reduction.finalize(acc, degree(rowptr), arg)

    output_shape = mat.shape[:-2] + (m, k)
    out = out.view(output_shape)
    if arg_out is not None:
        arg_out = arg_out.view(output_shape)
    return out, arg_out
