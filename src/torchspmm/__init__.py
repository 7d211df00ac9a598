"""
Sparse (CSR) @ dense products in which the contributions of the nonzero entries of each row are
combined by a reduction (``"sum"``, ``"mean"``, ``"min"`` or ``"max"``), along with their gradients.
"""

from ._autograd import spmm_reduce
from ._backward import spmm_mat_backward, spmm_value_backward
from ._csr import SparseCSR, to_csr
from ._errors import DeviceMismatchError, ShapeMismatchError, UnknownReductionError
from ._spmm import spmm

__all__ = [
    "DeviceMismatchError",
    "ShapeMismatchError",
    "SparseCSR",
    "UnknownReductionError",
    "spmm",
    "spmm_mat_backward",
    "spmm_reduce",
    "spmm_value_backward",
    "to_csr",
]
