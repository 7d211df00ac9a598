import warnings
from math import prod

import torch
from torch import Tensor

from ._errors import DeviceMismatchError, ShapeMismatchError
from .reduction import Mean, Reduction


def check_cpu(**tensors: Tensor | None) -> None:
    for name, tensor in tensors.items():
        if tensor is not None and tensor.device.type != "cpu":
            raise DeviceMismatchError(name, tensor)


def check_dim(name: str, tensor: Tensor, dim: int) -> None:
    if tensor.dim() != dim:
        raise ShapeMismatchError(
            f"Parameter `{name}` should be a tensor of dimension {dim}. Found `{name}.shape = "
            f"{tensor.shape}`."
        )


def check_min_dim(name: str, tensor: Tensor, min_dim: int) -> None:
    if tensor.dim() < min_dim:
        raise ShapeMismatchError(
            f"Parameter `{name}` should be a tensor of dimension at least {min_dim}. Found "
            f"`{name}.shape = {tensor.shape}`."
        )


def check_rowptr(rowptr: Tensor) -> None:
    check_dim("rowptr", rowptr, 1)
    if rowptr.numel() == 0:
        raise ShapeMismatchError("Parameter `rowptr` should contain at least one element.")


def check_index_dtype(**tensors: Tensor) -> None:
    for name, tensor in tensors.items():
        if tensor.is_floating_point() or tensor.is_complex() or tensor.dtype == torch.bool:
            raise TypeError(
                f"Parameter `{name}` should be a tensor of integer dtype. Found `{name}.dtype = "
                f"{tensor.dtype}`."
            )


def check_numeric_dtype(name: str, tensor: Tensor) -> None:
    if tensor.is_complex() or tensor.dtype == torch.bool:
        raise TypeError(
            f"Parameter `{name}` should be a tensor of real numeric dtype. Found `{name}.dtype = "
            f"{tensor.dtype}`."
        )


def check_same_dtype(name: str, tensor: Tensor, ref_name: str, ref: Tensor) -> None:
    if tensor.dtype != ref.dtype:
        raise TypeError(
            f"Parameter `{name}` should have the same dtype as `{ref_name}`. Found "
            f"`{name}.dtype = {tensor.dtype}` and `{ref_name}.dtype = {ref.dtype}`."
        )


def check_edge_count(col: Tensor, **tensors: Tensor | None) -> None:
    n_edges = col.numel()
    for name, tensor in tensors.items():
        if tensor is not None and tensor.numel() != n_edges:
            raise ShapeMismatchError(
                f"Parameter `{name}` should have one element per edge. Found `{name}.numel() = "
                f"{tensor.numel()}` and `col.numel() = {n_edges}`."
            )


def check_edges_match_rowptr(rowptr: Tensor, col: Tensor) -> None:
    if int(rowptr[-1]) != col.numel():
        raise ShapeMismatchError(
            "The last element of `rowptr` should be the number of edges. Found `rowptr[-1] = "
            f"{int(rowptr[-1])}` and `col.numel() = {col.numel()}`."
        )


def check_output_shaped(name: str, tensor: Tensor, mat_shape: torch.Size, n_rows: int) -> None:
    """Checks that ``tensor`` has the shape of the product of the sparse matrix with ``mat``."""

    expected_shape = mat_shape[:-2] + (n_rows, mat_shape[-1])
    if tensor.shape != expected_shape:
        raise ShapeMismatchError(
            f"Parameter `{name}` should have shape {tuple(expected_shape)}. Found `{name}.shape = "
            f"{tensor.shape}`."
        )


def batch_size(mat: Tensor) -> int:
    """
    Returns the number of ``[N, K]`` matrices stacked in ``mat``, all its leading dimensions being
    collapsed into a single batch dimension.
    """

    n, k = mat.shape[-2:]
    if n * k == 0:
        return prod(mat.shape[:-2])

    b, remainder = divmod(mat.numel(), n * k)
    if remainder != 0:
        raise ShapeMismatchError(
            f"The number of elements of `mat` ({mat.numel()}) should be a multiple of "
            f"`mat.shape[-2] * mat.shape[-1]` ({n * k})."
        )
    return b


def warn_if_truncating(reduction: Reduction, dtype: torch.dtype, stacklevel: int) -> None:
    """
    Warns that integer division truncates the mean. ``stacklevel`` is that of
    :func:`warnings.warn`, counted from the caller of this function.
    """

    if isinstance(reduction, Mean) and not dtype.is_floating_point:
        warnings.warn(
            f"Reduction {reduction} is applied to a tensor of dtype {dtype}: the division by the "
            "number of edges of each row is truncated towards zero.",
            RuntimeWarning,
            stacklevel=stacklevel + 1,
        )
