import torch
from torch import Tensor

from ._reduction_bases import AdditiveReduction


class Mean(AdditiveReduction):
    r"""
    :class:`~torchspmm.reduction._reduction_bases.Reduction` that averages the contributions of the
    edges of each row:
    :math:`\text{out}_{m} = \frac{1}{\max(d_m, 1)} \sum_{e \in \text{row}(m)} v_e \,
    \text{mat}_{c_e}`,
    where :math:`d_m` is the number of edges of row :math:`m`. Empty rows are thus left at zero.

    With integer dtypes, the division truncates towards zero.
    """

    def finalize(
        self, acc: Tensor, count: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        return _divide(acc, count.clamp(min=1).view(1, -1, 1)), arg

    def scale(self, edge_values: Tensor, edge_count: Tensor) -> Tensor:
        divisor = edge_count.clamp(min=1)
        divisor = divisor.view((1, -1) + (1,) * (edge_values.dim() - 2))
        return _divide(edge_values, divisor)


def _divide(values: Tensor, divisor: Tensor) -> Tensor:
    if values.is_floating_point() or values.is_complex():
        return values / divisor

    return torch.div(values, divisor, rounding_mode="trunc").to(values.dtype)
