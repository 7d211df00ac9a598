import math

import torch
from torch import Tensor

from ._reduction_bases import ExtremumReduction


class Max(ExtremumReduction):
    """
    :class:`~torchspmm.reduction._reduction_bases.Reduction` that keeps the largest contribution
    of each row, along with the index of the first edge that produced it.
    """

    _scatter_reduce = "amax"

    def init(self, dtype: torch.dtype) -> int | float:
        if dtype.is_floating_point:
            return -math.inf
        return torch.iinfo(dtype).min

    @staticmethod
    def _improves(candidate: Tensor, current: Tensor) -> Tensor:
        return candidate > current
