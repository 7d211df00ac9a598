"""Compressed sparse row container and conversions from other sparse formats."""

from __future__ import annotations

from typing import Any

import torch
from torch import Tensor

from ._autograd import spmm_reduce
from ._checks import (
    check_dim,
    check_edge_count,
    check_edges_match_rowptr,
    check_index_dtype,
    check_rowptr,
)
from ._errors import ShapeMismatchError
from ._utils import degree, rowptr_to_row


class SparseCSR:
    """
    Sparse matrix of shape ``sparse_sizes = (M, N)`` in compressed sparse row form. The edges of row
    ``m`` are ``col[rowptr[m]:rowptr[m + 1]]``, with optional ``value`` aligned with ``col``. A
    matrix without ``value`` behaves as if every edge had value :math:`1`.

    :param rowptr: Row pointers, of length ``M + 1``.
    :param col: Column index of each edge.
    :param value: Optional value of each edge.
    :param sparse_sizes: The pair ``(M, N)``. If ``None``, ``N`` is inferred as one plus the largest
        column index.
    """

    def __init__(
        self,
        rowptr: Tensor,
        col: Tensor,
        value: Tensor | None = None,
        sparse_sizes: tuple[int, int] | None = None,
    ):
        check_rowptr(rowptr)
        check_dim("col", col, 1)
        check_index_dtype(rowptr=rowptr, col=col)
        if value is not None:
            check_dim("value", value, 1)
        check_edge_count(col, value=value)
        check_edges_match_rowptr(rowptr, col)

        n_rows = rowptr.numel() - 1
        if sparse_sizes is None:
            n_cols = int(col.max()) + 1 if col.numel() > 0 else 0
            sparse_sizes = (n_rows, n_cols)
        elif sparse_sizes[0] != n_rows:
            raise ShapeMismatchError(
                f"Parameter `sparse_sizes` should start with the number of rows ({n_rows}). Found "
                f"`sparse_sizes = {sparse_sizes}`."
            )

        self.rowptr = rowptr.long()
        self.col = col.long()
        self.value = value
        self.sparse_sizes = (int(sparse_sizes[0]), int(sparse_sizes[1]))
        self._row: Tensor | None = None

    @classmethod
    def from_coo(
        cls,
        row: Tensor,
        col: Tensor,
        value: Tensor | None = None,
        sparse_sizes: tuple[int, int] | None = None,
    ) -> SparseCSR:
        """
        Builds a matrix from an edge list. Edges are sorted by row, keeping their relative order
        within each row.
        """

        check_dim("row", row, 1)
        check_index_dtype(row=row)
        check_edge_count(col, row=row)

        row = row.long()
        col = col.long()
        if sparse_sizes is None:
            n_rows = int(row.max()) + 1 if row.numel() > 0 else 0
            n_cols = int(col.max()) + 1 if col.numel() > 0 else 0
            sparse_sizes = (n_rows, n_cols)

        perm = torch.argsort(row, stable=True)
        row = row[perm]
        col = col[perm]
        if value is not None:
            value = value[perm]

        counts = torch.bincount(row, minlength=sparse_sizes[0])
        rowptr = torch.cat([counts.new_zeros(1), counts.cumsum(dim=0)])

        csr = cls(rowptr, col, value, sparse_sizes)
        csr._row = row
        return csr

    @classmethod
    def from_dense(cls, dense: Tensor) -> SparseCSR:
        """Builds a matrix whose edges are the nonzero entries of the 2-D tensor ``dense``."""

        check_dim("dense", dense, 2)
        row, col = dense.nonzero(as_tuple=True)
        return cls.from_coo(row, col, dense[row, col], (dense.shape[0], dense.shape[1]))

    def row(self) -> Tensor:
        """Row of each edge. Computed on first use and cached."""

        if self._row is None:
            self._row = rowptr_to_row(self.rowptr)
        return self._row

    def degree(self) -> Tensor:
        """Number of edges of each row."""

        return degree(self.rowptr)

    def nnz(self) -> int:
        return self.col.numel()

    def has_value(self) -> bool:
        return self.value is not None

    def to_dense(self, dtype: torch.dtype | None = None) -> Tensor:
        """
        Returns the dense ``[M, N]`` equivalent of this matrix. Entries appearing several times are
        summed.
        """

        if dtype is None:
            dtype = self.value.dtype if self.value is not None else torch.get_default_dtype()

        if self.value is not None:
            value = self.value.to(dtype)
        else:
            value = torch.ones(self.nnz(), dtype=dtype, device=self.col.device)
        dense = torch.zeros(self.sparse_sizes, dtype=dtype, device=self.col.device)
        return dense.index_put((self.row(), self.col), value, accumulate=True)

    def matmul(self, mat: Tensor, reduce: str = "sum") -> Tensor:
        """
        Multiplies this matrix with ``mat`` of shape ``[..., N, K]``, reducing the contributions of
        each row with ``reduce``. See :func:`~torchspmm.spmm_reduce`.
        """

        if mat.dim() < 2 or mat.shape[-2] != self.sparse_sizes[1]:
            raise ShapeMismatchError(
                f"Parameter `mat` should have shape [..., {self.sparse_sizes[1]}, K]. Found "
                f"`mat.shape = {mat.shape}`."
            )
        return spmm_reduce(self.rowptr, self.col, self.value, mat, reduce)

    def __matmul__(self, mat: Tensor) -> Tensor:
        return self.matmul(mat)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(sparse_sizes={self.sparse_sizes}, nnz={self.nnz()}, "
            f"has_value={self.has_value()})"
        )


def to_csr(x: Any) -> SparseCSR:
    """
    Converts ``x`` to a :class:`~torchspmm.SparseCSR`. Supported inputs are a
    :class:`~torchspmm.SparseCSR` (returned as is), a PyTorch sparse tensor in CSR or COO layout,
    a dense 2-D tensor and, if SciPy is installed, any ``scipy.sparse`` matrix or array.
    """

    if isinstance(x, SparseCSR):
        return x

    if isinstance(x, Tensor):
        if x.layout == torch.sparse_csr:
            sizes = (x.shape[0], x.shape[1])
            return SparseCSR(x.crow_indices(), x.col_indices(), x.values(), sizes)
        if x.layout == torch.sparse_coo:
            if x.sparse_dim() != 2 or x.dense_dim() != 0:
                raise ShapeMismatchError(
                    "Sparse COO tensors should have 2 sparse dimensions and no dense dimension. "
                    f"Found `sparse_dim() = {x.sparse_dim()}` and `dense_dim() = {x.dense_dim()}`."
                )
            x = x.coalesce()
            row, col = x.indices()
            return SparseCSR.from_coo(row, col, x.values(), (x.shape[0], x.shape[1]))
        if x.layout == torch.strided:
            return SparseCSR.from_dense(x)

    try:
        import scipy.sparse as sp

        if sp.issparse(x):
            csr = x.tocsr()
            return SparseCSR(
                torch.from_numpy(csr.indptr.astype("int64")),
                torch.from_numpy(csr.indices.astype("int64")),
                torch.from_numpy(csr.data),
                csr.shape,
            )
    except ModuleNotFoundError:
        pass

    raise TypeError(f"Unsupported sparse type: {type(x)}")
