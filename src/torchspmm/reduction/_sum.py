from torch import Tensor

from ._reduction_bases import AdditiveReduction


class Sum(AdditiveReduction):
    r"""
    :class:`~torchspmm.reduction._reduction_bases.Reduction` that sums the contributions of the
    edges of each row, i.e. the usual sparse-dense matrix product
    :math:`\text{out}_{m} = \sum_{e \in \text{row}(m)} v_e \, \text{mat}_{c_e}`.
    """

    def finalize(
        self, acc: Tensor, count: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        return acc, arg
